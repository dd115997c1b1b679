"""Git object store backed by the GitHub git data API.

This module implements the js-git style object interface (load/save by
hash, refs, tree creation) on top of GitHub's ``/repos/:root/git/*``
endpoints. Hashes are always computed locally with git's canonical
encoding; objects that come back from GitHub hashing differently are
repaired before they are returned.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from hubstore.constants import (
    DEFAULT_BRANCH,
    DEFAULT_MAX_WORKERS,
    HEAD_REF,
    MISSING_REF_MESSAGE,
    OBJECT_PATH,
    OBJECT_TYPES,
    REF_PATH,
    REFS_PATH,
    REFS_PREFIX,
)
from hubstore.errors import InputError, IntegrityMismatch, ObjectNotFoundError, TransportError
from hubstore.models import GitObject, ObjectType, Tree
from hubstore.remote.transport import ApiRequest, ApiResponse
from hubstore.storage.codec import commit_from_dict, decode, encode
from hubstore.storage.hashing import EMPTY_BLOB_HASH, EMPTY_TREE_HASH, hash_as
from hubstore.storage.repair import fix_date
from hubstore.storage.tree_builder import PathResolver, TreeBuilder
from hubstore.storage.type_cache import TypeCache

logger = logging.getLogger(__name__)


def _is_transport_failure(response: ApiResponse) -> bool:
    return response.status < 200 or response.status >= 500


def _is_missing(response: ApiResponse) -> bool:
    return 300 <= response.status < 500


class RemoteObjectStore:
    """Content-addressable git object store living in a GitHub repository.

    Attributes:
        request: Transport callable ``(method, path, body) -> ApiResponse``
        type_cache: Hash -> type hints used to narrow existence probes
        default_branch: Branch ``HEAD`` is taken to point at
        tree_builder: Engine behind :meth:`create_tree`

    Example:
        >>> store = RemoteObjectStore(GitHubTransport("octocat/hello", token))
        >>> blob_hash = store.save_as("blob", b"hello\\n")
        >>> store.load_as("blob", blob_hash)
        b'hello\\n'
    """

    def __init__(
        self,
        request: ApiRequest,
        type_cache: Optional[TypeCache] = None,
        default_branch: str = DEFAULT_BRANCH,
        resolver: Optional[PathResolver] = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        self.request = request
        self.type_cache = type_cache if type_cache is not None else TypeCache()
        self.default_branch = default_branch
        self.tree_builder = TreeBuilder(self, resolver=resolver, max_workers=max_workers)

    # ------------------------------------------------------------------
    # Objects
    # ------------------------------------------------------------------

    def load_as(self, object_type: Union[str, ObjectType], object_hash: str, strict: bool = False) -> GitObject:
        """Load an object by hash.

        If the decoded object does not hash back to ``object_hash`` (GitHub
        drops trailing newlines and timezones), the lost fields are guessed
        with :func:`fix_date`. When that fails the object is still returned
        and a warning is logged, unless ``strict`` is set.

        Args:
            object_type: "commit", "tag", "tree" or "blob"
            object_hash: SHA-1 of the object
            strict: Raise instead of warning when repair fails

        Returns:
            The decoded object

        Raises:
            ObjectNotFoundError: If the remote has no such object
            TransportError: On an unexpected HTTP status
            EncodingError: If the response cannot be decoded
            IntegrityMismatch: If strict and the object cannot be repaired
        """
        kind = ObjectType.parse(object_type)
        # GitHub can't serve these, but we know them already
        if kind is ObjectType.TREE and object_hash == EMPTY_TREE_HASH:
            return {}
        if kind is ObjectType.BLOB and object_hash == EMPTY_BLOB_HASH:
            return b""

        response = self.request("GET", self._object_path(kind, object_hash), None)
        if _is_transport_failure(response):
            raise TransportError(response.status, response.message)
        if _is_missing(response):
            raise ObjectNotFoundError(f"{kind.value} not found: {object_hash}")

        body = decode(kind, response.body)
        actual_hash = hash_as(kind, body)
        if actual_hash != object_hash:
            if fix_date(kind, body, object_hash):
                logger.info("%s repaired %s", kind.value, object_hash)
            else:
                logger.warning("Unable to repair %s %s (hashes to %s)", kind.value, object_hash, actual_hash)
                if strict:
                    raise IntegrityMismatch(kind.value, object_hash, actual_hash)
        self.type_cache.remember(object_hash, kind.value)
        return body

    def save_as(self, object_type: Union[str, ObjectType], body: Any) -> str:
        """Save an object, skipping the write if the remote already has it.

        Args:
            object_type: "commit", "tag", "tree" or "blob"
            body: The object to store; a commit may also be a mapping
                accepted by :func:`commit_from_dict`

        Returns:
            Hash the remote stored the object under

        Raises:
            EncodingError: If body cannot be encoded
            TransportError: If the remote rejects the write
        """
        kind = ObjectType.parse(object_type)
        if kind is ObjectType.COMMIT and isinstance(body, Mapping):
            body = commit_from_dict(body)
        object_hash = hash_as(kind, body)

        # GitHub doesn't allow creating empty trees or blobs
        if object_hash in (EMPTY_TREE_HASH, EMPTY_BLOB_HASH):
            return object_hash

        self.type_cache.remember(object_hash, kind.value)
        if self.has_hash(object_hash):
            return object_hash

        request = encode(kind, body)
        response = self.request("POST", OBJECT_PATH.format(type=kind.value), request)
        if not response.ok:
            raise TransportError(response.status, response.message)

        remote_hash = response.body["sha"]
        if remote_hash != object_hash:
            logger.warning("GitHub stored %s %s as %s", kind.value, object_hash, remote_hash)
        self.type_cache.remember(remote_hash, kind.value)
        return remote_hash

    def has_hash(self, object_hash: str) -> bool:
        """Check whether the remote has an object with this hash.

        Probes only the cached type when one is known, otherwise every type
        in turn.

        Raises:
            TransportError: On an unexpected HTTP status
        """
        cached_type = self.type_cache.get(object_hash)
        types = [cached_type] if cached_type else list(OBJECT_TYPES)
        for object_type in types:
            response = self.request("GET", self._object_path(object_type, object_hash), None)
            if _is_transport_failure(response):
                raise TransportError(response.status, response.message)
            if _is_missing(response):
                continue
            self.type_cache.remember(object_hash, object_type)
            return True
        if cached_type:
            self.type_cache.forget(object_hash)
        return False

    def create_tree(self, entries: List[Dict[str, Any]], base: Optional[str] = None) -> Tuple[str, Tree]:
        """Create a tree from path changes. See :class:`TreeBuilder`."""
        return self.tree_builder.create_tree(entries, base=base)

    # ------------------------------------------------------------------
    # Refs
    # ------------------------------------------------------------------

    def read_ref(self, ref: str) -> Optional[str]:
        """Return the hash a ref points at, or None if it does not exist.

        Raises:
            InputError: If ref is not ``HEAD`` or under ``refs/``
            TransportError: On an unexpected HTTP status
        """
        ref = self._normalize_ref(ref)
        response = self.request("GET", REF_PATH.format(ref=ref), None)
        if response.status == 404:
            return None
        if not response.ok:
            raise TransportError(response.status, response.message)
        # A list means ref only matched other refs by prefix
        if isinstance(response.body, list):
            return None
        return response.body["object"]["sha"]

    def update_ref(self, ref: str, object_hash: str, force: bool = False) -> str:
        """Point a ref at a hash, creating the ref if it does not exist.

        Args:
            ref: Full ref name, or ``HEAD``
            object_hash: New target
            force: Allow non fast-forward updates

        Returns:
            object_hash

        Raises:
            InputError: If ref is not ``HEAD`` or under ``refs/``
            TransportError: If the remote rejects the update
        """
        ref = self._normalize_ref(ref)
        response = self.request(
            "PATCH",
            REF_PATH.format(ref=ref),
            {"sha": object_hash, "force": bool(force)},
        )
        if response.status == 422 and response.message == MISSING_REF_MESSAGE:
            logger.debug("Creating missing ref %s", ref)
            response = self.request("POST", REFS_PATH, {"ref": ref, "sha": object_hash})
        if not response.ok:
            raise TransportError(response.status, response.message)
        return object_hash

    def delete_ref(self, ref: str) -> None:
        """Delete a ref. Deleting a missing ref is not an error.

        Raises:
            InputError: If ref is not ``HEAD`` or under ``refs/``
            TransportError: On an unexpected HTTP status
        """
        ref = self._normalize_ref(ref)
        response = self.request("DELETE", REF_PATH.format(ref=ref), None)
        if response.status == 404:
            return
        if not response.ok:
            raise TransportError(response.status, response.message)

    def list_refs(self, prefix: Optional[str] = None) -> Optional[List[str]]:
        """List ref names, optionally only those under a prefix.

        Args:
            prefix: e.g. ``"heads"`` or ``"refs/tags"``

        Returns:
            Full ref names, or None if nothing matches the prefix

        Raises:
            TransportError: On an unexpected HTTP status
        """
        path = REFS_PATH
        if prefix:
            prefix = prefix.strip("/")
            if prefix.startswith(REFS_PREFIX):
                prefix = prefix[len(REFS_PREFIX):]
            if prefix:
                path += "/" + prefix
        response = self.request("GET", path, None)
        if response.status == 404:
            return None
        if not response.ok:
            raise TransportError(response.status, response.message)
        if isinstance(response.body, dict):
            return [response.body["ref"]]
        return [entry["ref"] for entry in response.body]

    def _normalize_ref(self, ref: str) -> str:
        if ref == HEAD_REF:
            ref = f"{REFS_PREFIX}heads/{self.default_branch}"
        if not isinstance(ref, str) or not ref.startswith(REFS_PREFIX):
            raise InputError(f"Invalid ref: {ref}")
        return ref

    @staticmethod
    def _object_path(object_type: Union[str, ObjectType], object_hash: str) -> str:
        kind = ObjectType.parse(object_type)
        return f"{OBJECT_PATH.format(type=kind.value)}/{object_hash}"
