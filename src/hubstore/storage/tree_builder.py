"""Tree creation with deep paths and deletions.

GitHub's tree endpoint can merge new entries into a base tree, including
entries with nested paths, but it has no way to remove an entry. Changes
that only add or replace entries go straight to the endpoint. Changes that
delete entries are applied by hand: every directory losing an entry is
loaded, edited locally and saved as a new tree, and the rebuilt
directories are then merged into the base like any other entry.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Optional, Tuple, TypeVar

from hubstore.constants import DEFAULT_MAX_WORKERS, MODE_TREE, OBJECT_PATH
from hubstore.errors import InputError, ObjectNotFoundError, TransportError
from hubstore.models import ObjectType, Tree, TreeEntry
from hubstore.storage.codec import decode, map_tree_entry
from hubstore.storage.hashing import EMPTY_TREE_HASH

if TYPE_CHECKING:
    from hubstore.storage.object_store import RemoteObjectStore

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

PathResolver = Callable[[str, str], Tree]


def split_path(path: str) -> Tuple[str, str]:
    """Split ``a/b/c`` into ``("a/b", "c")``; top level names get ``""``."""
    parent, _, name = path.rpartition("/")
    return parent, name


def path_depth(path: str) -> int:
    return path.count("/") + 1 if path else 0


def run_all(func: Callable[[T], R], items: Iterable[T], max_workers: int = DEFAULT_MAX_WORKERS) -> List[R]:
    """Run func over items concurrently and return results in input order.

    Every call runs to completion. If any call fails, the first failure to
    complete is raised and the others are logged and dropped.
    """
    items = list(items)
    if not items:
        return []
    with ThreadPoolExecutor(max_workers=min(max_workers, len(items))) as pool:
        futures = [pool.submit(func, item) for item in items]
        first_error: Optional[BaseException] = None
        for future in as_completed(futures):
            error = future.exception()
            if error is None:
                continue
            if first_error is None:
                first_error = error
            else:
                logger.debug("Discarding extra error: %s", error)
    if first_error is not None:
        raise first_error
    return [future.result() for future in futures]


def _new_edits() -> Dict[str, Any]:
    return {"add": {}, "del": [], "nested": []}


def _is_under(path: str, directory: str) -> bool:
    return path.startswith(directory + "/")


class TreeBuilder:
    """Builds trees on the remote from a flat list of path changes.

    Each change is a dict with ``path`` and, for additions, ``mode`` plus
    either ``hash`` or ``content`` (bytes or text, saved as a blob first).
    A change without ``mode`` deletes ``path`` from the base tree.

    Attributes:
        store: Store used for blob/tree saves and API requests
        resolver: Callable returning the tree at a path under a root tree
        max_workers: Upper bound on concurrent requests per batch

    Example:
        >>> builder = TreeBuilder(store)
        >>> tree_hash, tree = builder.create_tree(
        ...     [{"path": "docs/README", "mode": 0o100644, "content": "hi\\n"},
        ...      {"path": "old.txt"}],
        ...     base=root_hash,
        ... )
    """

    def __init__(
        self,
        store: "RemoteObjectStore",
        resolver: Optional[PathResolver] = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        self.store = store
        self.resolver = resolver or self.resolve_path
        self.max_workers = max_workers

    def create_tree(self, entries: List[Dict[str, Any]], base: Optional[str] = None) -> Tuple[str, Tree]:
        """Create a tree from path changes, optionally on top of a base tree.

        With no changes nothing is sent: the result is the base tree itself
        when one is given, and the well-known empty tree otherwise.

        Args:
            entries: Path changes; the caller's dicts are not modified
            base: Hash of the tree the changes apply to

        Returns:
            Tuple of (tree hash, decoded tree)

        Raises:
            InputError: If an entry is malformed, or entries are deleted
                without a base tree
            TransportError: If the remote rejects a request
        """
        changes = [self._normalize(entry) for entry in entries]
        deletions = [change["path"] for change in changes if not change.get("mode")]
        if deletions and base is None:
            raise InputError("Deleting entries requires a base tree")

        to_create = [
            change for change in changes
            if change.get("mode") and change.get("hash") is None
        ]
        if to_create:
            self._save_blobs(to_create)

        if deletions:
            return self._slow_update(changes, deletions, base)
        return self._fast_update(changes, base)

    def resolve_path(self, root: str, path: str) -> Tree:
        """Load the tree found at path under the root tree.

        Raises:
            ObjectNotFoundError: If path does not name a directory
        """
        tree = self.store.load_as(ObjectType.TREE, root)
        if not path:
            return tree
        for part in path.split("/"):
            entry = tree.get(part)
            if entry is None or entry.mode != MODE_TREE:
                raise ObjectNotFoundError(f"No tree at {path!r} under {root}")
            tree = self.store.load_as(ObjectType.TREE, entry.hash)
        return tree

    def _normalize(self, entry: Dict[str, Any]) -> Dict[str, Any]:
        change = dict(entry)
        path = str(change.get("path") or "").strip("/")
        if not path:
            raise InputError(f"Tree entry needs a path: {entry!r}")
        change["path"] = path
        if change.get("mode") and change.get("hash") is None and change.get("content") is None:
            raise InputError(f"Tree entry {path!r} needs a hash or content")
        return change

    def _save_blobs(self, changes: List[Dict[str, Any]]) -> None:
        hashes = run_all(
            lambda change: self.store.save_as(ObjectType.BLOB, change["content"]),
            changes,
            self.max_workers,
        )
        for change, blob_hash in zip(changes, hashes):
            del change["content"]
            change["hash"] = blob_hash

    def _fast_update(self, changes: List[Dict[str, Any]], base: Optional[str]) -> Tuple[str, Tree]:
        if not changes:
            # GitHub refuses to create empty trees
            if base is None:
                return EMPTY_TREE_HASH, {}
            return base, self.store.load_as(ObjectType.TREE, base)

        request: Dict[str, Any] = {"tree": [map_tree_entry(change) for change in changes]}
        if base:
            request["base_tree"] = base
        response = self.store.request("POST", OBJECT_PATH.format(type="tree"), request)
        if not response.ok:
            raise TransportError(response.status, response.message)
        tree_hash = response.body["sha"]
        self.store.type_cache.remember(tree_hash, ObjectType.TREE.value)
        return tree_hash, decode(ObjectType.TREE, response.body)

    def _slow_update(
        self,
        changes: List[Dict[str, Any]],
        deletions: List[str],
        base: str,
    ) -> Tuple[str, Tree]:
        pending: Dict[str, Dict[str, Any]] = {}
        for path in deletions:
            parent_path, name = split_path(path)
            pending.setdefault(parent_path, _new_edits())["del"].append(name)

        other = self._claim([change for change in changes if change.get("mode")], pending)

        # Deepest directories first so each rebuilt child lands in its
        # rebuilt ancestor instead of being merged separately.
        new_root: Optional[Tuple[str, Tree]] = None
        while pending:
            depth = max(path_depth(path) for path in pending)
            level = [path for path in pending if path_depth(path) == depth]
            edits_by_path = {path: pending.pop(path) for path in level}
            results = run_all(
                lambda path: self._rebuild(base, path, edits_by_path[path]),
                level,
                self.max_workers,
            )
            for path, (tree_hash, tree) in zip(level, results):
                if not path:
                    new_root = (tree_hash, tree)
                    continue
                parent_path, name = split_path(path)
                if not tree:
                    # Drop directories left empty, as git does
                    if parent_path not in pending:
                        pending[parent_path] = _new_edits()
                        other = self._claim(other, pending)
                    pending[parent_path]["del"].append(name)
                else:
                    rebuilt = {"path": path, "mode": MODE_TREE, "hash": tree_hash}
                    other = self._claim(other + [rebuilt], pending)

        if new_root is not None:
            if not other:
                return new_root
            return self._fast_update(other, new_root[0])
        return self._fast_update(other, base)

    def _claim(
        self,
        changes: List[Dict[str, Any]],
        pending: Dict[str, Dict[str, Any]],
    ) -> List[Dict[str, Any]]:
        """Hand each addition to the deepest pending directory above it.

        Additions directly inside a pending directory become part of its
        edit set; deeper ones are merged into it after it is rebuilt.
        Nested additions already handed out are redistributed, since a
        newly pending directory may sit closer to them. Additions under no
        pending directory other than the root are returned.
        """
        unclaimed = list(changes)
        for edits in pending.values():
            unclaimed.extend(edits["nested"])
            edits["nested"] = []

        remaining = []
        for change in unclaimed:
            parent_path, name = split_path(change["path"])
            if parent_path in pending:
                pending[parent_path]["add"][name] = TreeEntry(mode=change["mode"], hash=change["hash"])
                continue
            owners = [path for path in pending if path and _is_under(parent_path, path)]
            if owners:
                pending[max(owners, key=path_depth)]["nested"].append(change)
            else:
                remaining.append(change)
        return remaining

    def _rebuild(self, base: str, path: str, edits: Dict[str, Any]) -> Tuple[str, Tree]:
        tree = dict(self.resolver(base, path))
        for name in edits["del"]:
            tree.pop(name, None)
        tree.update(edits["add"])
        tree_hash = self.store.save_as(ObjectType.TREE, tree)
        if not edits["nested"]:
            return tree_hash, tree

        offset = len(path) + 1
        nested = [dict(change, path=change["path"][offset:]) for change in edits["nested"]]
        return self._fast_update(nested, tree_hash if tree else None)
