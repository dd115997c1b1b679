"""HubStore - a git object store backed by the GitHub git data API.

HubStore lets code that speaks the git object model (commits, tags, trees,
blobs addressed by SHA-1) load and save objects through the remote API,
repairing the fields the service normalizes so hashes keep matching.
"""

__version__ = "0.1.0"
__author__ = "HubStore Contributors"

from hubstore.errors import (
    EncodingError,
    HubStoreError,
    InputError,
    IntegrityMismatch,
    ObjectNotFoundError,
    TransportError,
)
from hubstore.storage import RemoteObjectStore, TypeCache

__all__ = [
    "__version__",
    "__author__",
    "RemoteObjectStore",
    "TypeCache",
    "HubStoreError",
    "TransportError",
    "ObjectNotFoundError",
    "EncodingError",
    "InputError",
    "IntegrityMismatch",
]
