from graphstore.store.base import GraphStore
from graphstore.store.remote import RemoteGraphStore

__all__ = ("GraphStore", "RemoteGraphStore")
