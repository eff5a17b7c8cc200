from apsync.domain.linking.util.di.provider import LinkingProvider

__all__ = ["LinkingProvider"]
