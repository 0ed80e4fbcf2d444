from .store import DispatchStore, InMemoryDispatchStore, PersistenceError, SqlDispatchStore

__all__ = ["DispatchStore", "InMemoryDispatchStore", "PersistenceError", "SqlDispatchStore"]
