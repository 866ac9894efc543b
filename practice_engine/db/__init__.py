"""PostgreSQL storage for the practice engine."""

from .catalog import SqlContentCatalog
from .gateway import SqlPersistenceGateway

__all__ = ["SqlContentCatalog", "SqlPersistenceGateway"]
