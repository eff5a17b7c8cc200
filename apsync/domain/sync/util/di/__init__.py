from apsync.domain.sync.util.di.provider import SyncProvider

__all__ = ["SyncProvider"]
