"""Storage layer for HubStore.

This module provides the GitHub-backed object store, the canonical hash
engine, the JSON codec, and the tree mutation engine.
"""

from hubstore.storage.hashing import EMPTY_BLOB_HASH, EMPTY_TREE_HASH, hash_as
from hubstore.storage.object_store import RemoteObjectStore
from hubstore.storage.tree_builder import TreeBuilder
from hubstore.storage.type_cache import TypeCache

__all__ = [
    "RemoteObjectStore",
    "TreeBuilder",
    "TypeCache",
    "hash_as",
    "EMPTY_BLOB_HASH",
    "EMPTY_TREE_HASH",
]
