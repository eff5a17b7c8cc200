from typing import Protocol


class Port(Protocol):
    """Marker base for domain ports.

    Ports are the interfaces the domain needs from the outside world
    (storage, external APIs). Adapters in ``apsync.infrastructure`` implement
    them by subclassing the port.
    """
