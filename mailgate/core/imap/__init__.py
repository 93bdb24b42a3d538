from .connection import ConnectionStats, IMAPAuthorizer, authorize

__all__ = ["ConnectionStats", "IMAPAuthorizer", "authorize"]
