"""Custom Dishka scopes."""

from dishka import BaseScope, new_scope


class Scope(BaseScope):  # type: ignore[misc]  # BaseScope is designed to be subclassed
    """Hierarchy: APP -> UOW

    - APP: application lifetime (engines, HTTP client, config)
    - UOW: one unit of work (an HTTP request or one scheduled run)
    """

    APP = new_scope("APP")
    UOW = new_scope("UOW")
