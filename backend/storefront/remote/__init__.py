from .base import (
    AuthProvider,
    AuthSession,
    BlobStorage,
    Filter,
    Identity,
    Order,
    Range,
    RemoteClient,
    RemoteStore,
    RemoteStoreError,
    SelectResult,
)

BACKENDS = ("sql", "rest")


def connect(config) -> RemoteClient:
    """Open a client bundle for the configured backend (one per workspace)."""
    backend = (config.get("REMOTE_BACKEND") or "sql").lower()
    if backend == "rest":
        from .rest import connect_rest
        return connect_rest(config)
    if backend == "sql":
        from .sql import connect_sql
        return connect_sql(config)
    raise RuntimeError(f"Unknown REMOTE_BACKEND {backend!r}; expected one of {', '.join(BACKENDS)}")


__all__ = [
    'AuthProvider', 'AuthSession', 'BlobStorage', 'Filter', 'Identity', 'Order', 'Range',
    'RemoteClient', 'RemoteStore', 'RemoteStoreError', 'SelectResult', 'connect', 'BACKENDS',
]
