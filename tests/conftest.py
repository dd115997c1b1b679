"""Pytest configuration and shared fixtures."""

import base64
import copy
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import pytest

from hubstore.constants import MODE_BLOB, MODE_TREE
from hubstore.models import Commit, GitDate, Person, Tag, TreeEntry
from hubstore.remote.transport import ApiResponse
from hubstore.storage import RemoteObjectStore, TypeCache
from hubstore.storage.codec import (
    decode_blob,
    decode_commit,
    decode_tag,
    encode_date,
    mode_to_string,
    mode_to_type,
)
from hubstore.storage.hashing import EMPTY_TREE_HASH, hash_as


class FakeGitHub:
    """In-memory stand-in for the GitHub git data API.

    Objects are kept as in-memory git objects keyed by their real git hash
    and rendered the way GitHub renders them on GET. With ``lossy=True``
    the rendering mimics GitHub's normalization: trailing newlines are
    stripped from messages and dates come back in UTC.

    Attributes:
        objects: hash -> (type, object)
        refs: ref name -> hash
        calls: Every (method, path, body) received, in order
    """

    def __init__(self, lossy: bool = False) -> None:
        self.lossy = lossy
        self.objects: Dict[str, Tuple[str, Any]] = {}
        self.refs: Dict[str, str] = {}
        self.calls: List[Tuple[str, str, Any]] = []
        self._lock = threading.RLock()

    # Helpers for tests

    def put(self, object_type: str, value: Any) -> str:
        """Store an object directly without recording a call."""
        with self._lock:
            object_hash = hash_as(object_type, value)
            self.objects[object_hash] = (object_type, copy.deepcopy(value))
            return object_hash

    def writes(self, kind: Optional[str] = None) -> List[Tuple[str, str, Any]]:
        """POSTs to object endpoints, optionally of one type."""
        return [
            call for call in self.calls
            if call[0] == "POST" and "/refs" not in call[1]
            and (kind is None or call[1].endswith(f"/{kind}s"))
        ]

    def tree_at(self, root: str, path: str) -> Dict[str, TreeEntry]:
        tree = self.objects[root][1]
        for part in filter(None, path.split("/")):
            tree = self.objects[tree[part].hash][1]
        return tree

    # Transport interface

    def __call__(self, method: str, path: str, body: Optional[Any] = None) -> ApiResponse:
        with self._lock:
            self.calls.append((method, path, copy.deepcopy(body)))
            parts = path.split("/")[4:]
            if parts[0] == "refs":
                return self._refs(method, parts, body)
            object_type = parts[0][:-1]
            if method == "GET":
                return self._get_object(object_type, parts[1])
            if method == "POST":
                return self._create_object(object_type, body)
            return ApiResponse(405, {"message": "Method not allowed"})

    # Objects

    def _get_object(self, object_type: str, object_hash: str) -> ApiResponse:
        stored = self.objects.get(object_hash)
        if stored is None or stored[0] != object_type:
            return ApiResponse(404, {"message": "Not Found"})
        return ApiResponse(200, self._render(object_hash, object_type, stored[1]))

    def _render_person(self, person: Person) -> Dict[str, str]:
        if self.lossy:
            moment = datetime.fromtimestamp(person.date.seconds, tz=timezone.utc)
            date = moment.strftime("%Y-%m-%dT%H:%M:%SZ")
        else:
            date = encode_date(person.date)
        return {"name": person.name, "email": person.email, "date": date}

    def _render_message(self, message: str) -> str:
        return message.rstrip("\n") if self.lossy else message

    def _render(self, object_hash: str, object_type: str, value: Any) -> Dict[str, Any]:
        if object_type == "commit":
            return {
                "sha": object_hash,
                "tree": {"sha": value.tree},
                "parents": [{"sha": parent} for parent in value.parents],
                "author": self._render_person(value.author),
                "committer": self._render_person(value.committer),
                "message": self._render_message(value.message),
            }
        if object_type == "tag":
            return {
                "sha": object_hash,
                "tag": value.tag,
                "object": {"sha": value.object, "type": value.type},
                "tagger": self._render_person(value.tagger),
                "message": self._render_message(value.message),
            }
        if object_type == "tree":
            return {
                "sha": object_hash,
                "tree": [
                    {
                        "path": name,
                        "mode": mode_to_string(entry.mode),
                        "type": mode_to_type(entry.mode),
                        "sha": entry.hash,
                    }
                    for name, entry in value.items()
                ],
            }
        encoded = base64.b64encode(value).decode("ascii")
        wrapped = "\n".join(encoded[i:i + 60] for i in range(0, len(encoded), 60))
        return {"sha": object_hash, "content": wrapped + "\n", "encoding": "base64"}

    def _create_object(self, object_type: str, body: Dict[str, Any]) -> ApiResponse:
        if object_type == "blob":
            content = decode_blob(body)
            if not content:
                return ApiResponse(422, {"message": "Invalid request"})
            value: Any = content.encode("utf-8") if isinstance(content, str) else content
        elif object_type == "tree":
            return self._create_tree(body)
        elif object_type == "commit":
            value = decode_commit(body)
            if value.tree not in self.objects and value.tree != EMPTY_TREE_HASH:
                return ApiResponse(422, {"message": "Tree SHA does not exist"})
        elif object_type == "tag":
            value = decode_tag(body)
            if value.object not in self.objects:
                return ApiResponse(422, {"message": "Object does not exist"})
        else:
            return ApiResponse(404, {"message": "Not Found"})
        object_hash = self.put(object_type, value)
        return ApiResponse(201, self._render(object_hash, object_type, value))

    def _create_tree(self, body: Dict[str, Any]) -> ApiResponse:
        tree: Dict[str, TreeEntry] = {}
        if body.get("base_tree"):
            base = self.objects.get(body["base_tree"])
            if base is None:
                return ApiResponse(422, {"message": "base_tree is not a valid tree oid"})
            tree = dict(base[1])
        for item in body["tree"]:
            self._insert(tree, item["path"].split("/"), item)
        if not tree:
            return ApiResponse(422, {"message": "Invalid tree info"})
        object_hash = self.put("tree", tree)
        return ApiResponse(201, self._render(object_hash, "tree", tree))

    def _insert(self, tree: Dict[str, TreeEntry], parts: List[str], item: Dict[str, Any]) -> None:
        name = parts[0]
        if len(parts) == 1:
            sha = item.get("sha") or self.put("blob", item["content"].encode("utf-8"))
            tree[name] = TreeEntry(mode=int(item["mode"], 8), hash=sha)
            return
        entry = tree.get(name)
        subtree = dict(self.objects[entry.hash][1]) if entry and entry.mode == MODE_TREE else {}
        self._insert(subtree, parts[1:], item)
        tree[name] = TreeEntry(mode=MODE_TREE, hash=self.put("tree", subtree))

    # Refs

    def _refs(self, method: str, parts: List[str], body: Optional[Dict[str, Any]]) -> ApiResponse:
        name = "/".join(parts)
        if method == "GET":
            if name in self.refs:
                return ApiResponse(200, self._render_ref(name))
            prefix = name.rstrip("/") + "/"
            matches = [ref for ref in sorted(self.refs) if ref.startswith(prefix)]
            if not matches:
                return ApiResponse(404, {"message": "Not Found"})
            return ApiResponse(200, [self._render_ref(ref) for ref in matches])
        if method == "POST":
            if body["ref"] in self.refs:
                return ApiResponse(422, {"message": "Reference already exists"})
            self.refs[body["ref"]] = body["sha"]
            return ApiResponse(201, self._render_ref(body["ref"]))
        if method == "PATCH":
            if name not in self.refs:
                return ApiResponse(422, {"message": "Reference does not exist"})
            self.refs[name] = body["sha"]
            return ApiResponse(200, self._render_ref(name))
        if method == "DELETE":
            if self.refs.pop(name, None) is None:
                return ApiResponse(404, {"message": "Not Found"})
            return ApiResponse(204, None)
        return ApiResponse(405, {"message": "Method not allowed"})

    def _render_ref(self, name: str) -> Dict[str, Any]:
        object_hash = self.refs[name]
        object_type = self.objects.get(object_hash, ("commit", None))[0]
        return {"ref": name, "object": {"sha": object_hash, "type": object_type}}


def make_person(name: str = "Ada Lovelace", offset: int = 0, seconds: int = 1400000000) -> Person:
    return Person(
        name=name,
        email=f"{name.split()[0].lower()}@example.com",
        date=GitDate(seconds=seconds, offset=offset),
    )


@pytest.fixture
def github() -> FakeGitHub:
    """A fresh fake remote."""
    return FakeGitHub()


@pytest.fixture
def lossy_github() -> FakeGitHub:
    """A fake remote that drops trailing newlines and timezones on read."""
    return FakeGitHub(lossy=True)


@pytest.fixture
def store(github: FakeGitHub) -> RemoteObjectStore:
    """A store talking to the fake remote with its own type cache."""
    return RemoteObjectStore(github, type_cache=TypeCache(), max_workers=4)


@pytest.fixture
def person() -> Person:
    return make_person(offset=-120)


@pytest.fixture
def sample_tree(github: FakeGitHub) -> Tuple[str, Dict[str, str]]:
    """Root tree {"a/b", "a/c", "d"} seeded on the fake remote.

    Returns:
        (root hash, {name: blob hash}) for blobs b, c, d and a spare e
    """
    blobs = {
        name: github.put("blob", f"{name} contents\n".encode("utf-8"))
        for name in ("b", "c", "d", "e")
    }
    subtree = github.put("tree", {
        "b": TreeEntry(MODE_BLOB, blobs["b"]),
        "c": TreeEntry(MODE_BLOB, blobs["c"]),
    })
    root = github.put("tree", {
        "a": TreeEntry(MODE_TREE, subtree),
        "d": TreeEntry(MODE_BLOB, blobs["d"]),
    })
    return root, blobs


@pytest.fixture
def sample_commit(person: Person) -> Commit:
    return Commit(
        tree="4b825dc642cb6eb9a060e54bf8d69288fbee4904",
        parents=[],
        author=person,
        committer=person,
        message="Initial commit\n",
    )


@pytest.fixture
def sample_tag(person: Person) -> Tag:
    return Tag(
        object="ce013625030ba8dba906f756967f9e9ca394464a",
        type="blob",
        tag="v1.0",
        tagger=person,
        message="Release 1.0\n",
    )
