from novelbridge.storage.errors import PersistenceError
from novelbridge.storage.tag_repository import generate_slug
from novelbridge.storage.unit_of_work import RepositoryProvider, UnitOfWork

__all__ = ["PersistenceError", "RepositoryProvider", "UnitOfWork", "generate_slug"]
