"""Canonical git encoding and content hashing.

Objects are serialized exactly as git writes them to its object database,
framed with a ``"<type> <length>\\0"`` header and digested with SHA-1, so
hashes computed here agree with the ones GitHub assigns.
"""

import hashlib
from typing import Any, Dict, Union

from hubstore.constants import HASH_ALGORITHM, MODE_TREE
from hubstore.errors import EncodingError
from hubstore.models import Commit, GitDate, ObjectType, Person, Tag, TreeEntry


def format_date(date: GitDate) -> str:
    """Format a date as ``<seconds> <+|-HHMM>``.

    The stored offset counts minutes west of UTC, so a positive offset is
    written with a ``-`` sign.
    """
    offset = date.offset
    if offset <= 0:
        sign = "+"
        offset = -offset
    else:
        sign = "-"
    hours, minutes = divmod(offset, 60)
    return f"{int(date.seconds)} {sign}{hours:02d}{minutes:02d}"


def format_person(person: Person) -> str:
    return f"{person.name} <{person.email}> {format_date(person.date)}"


def encode_tree_body(tree: Dict[str, TreeEntry]) -> bytes:
    """Encode tree entries in git order.

    Git sorts entries by name, comparing directory names as though they
    ended with a slash.
    """

    def sort_key(name: str) -> bytes:
        entry = tree[name]
        suffix = "/" if entry.mode == MODE_TREE else ""
        return (name + suffix).encode("utf-8")

    chunks = []
    for name in sorted(tree, key=sort_key):
        entry = tree[name]
        try:
            raw_hash = bytes.fromhex(entry.hash)
        except (TypeError, ValueError) as e:
            raise EncodingError(f"Invalid hash for tree entry {name!r}: {entry.hash!r}") from e
        chunks.append(f"{entry.mode:o} {name}\0".encode("utf-8") + raw_hash)
    return b"".join(chunks)


def encode_commit_body(commit: Commit) -> bytes:
    if commit.author is None or commit.committer is None:
        raise EncodingError("Commit needs both author and committer to be hashed")
    lines = [f"tree {commit.tree}"]
    lines.extend(f"parent {parent}" for parent in commit.parents)
    lines.append(f"author {format_person(commit.author)}")
    lines.append(f"committer {format_person(commit.committer)}")
    text = "\n".join(lines) + "\n\n" + commit.message
    return text.encode("utf-8")


def encode_tag_body(tag: Tag) -> bytes:
    text = (
        f"object {tag.object}\n"
        f"type {tag.type}\n"
        f"tag {tag.tag}\n"
        f"tagger {format_person(tag.tagger)}\n"
        f"\n{tag.message}"
    )
    return text.encode("utf-8")


def encode_blob_body(blob: Union[bytes, str]) -> bytes:
    if isinstance(blob, str):
        return blob.encode("utf-8")
    if isinstance(blob, (bytes, bytearray, memoryview)):
        return bytes(blob)
    raise EncodingError("Invalid blob type, must be binary or string")


def encode_body(object_type: Union[str, ObjectType], body: Any) -> bytes:
    """Encode an object into git's canonical byte form (without header).

    Raises:
        EncodingError: If body does not match object_type
    """
    kind = ObjectType.parse(object_type)
    if kind is ObjectType.BLOB:
        return encode_blob_body(body)
    if kind is ObjectType.TREE:
        if not isinstance(body, dict):
            raise EncodingError(f"Tree must be a dict, got {type(body).__name__}")
        return encode_tree_body(body)
    if kind is ObjectType.COMMIT:
        if not isinstance(body, Commit):
            raise EncodingError(f"Expected Commit, got {type(body).__name__}")
        return encode_commit_body(body)
    if not isinstance(body, Tag):
        raise EncodingError(f"Expected Tag, got {type(body).__name__}")
    return encode_tag_body(body)


def frame(object_type: Union[str, ObjectType], body: Any) -> bytes:
    """Prefix the encoded body with git's ``<type> <length>\\0`` header."""
    kind = ObjectType.parse(object_type)
    data = encode_body(kind, body)
    return f"{kind.value} {len(data)}\0".encode("ascii") + data


def hash_as(object_type: Union[str, ObjectType], body: Any) -> str:
    """Compute the git hash of an object.

    Args:
        object_type: One of "commit", "tag", "tree", "blob"
        body: The in-memory object

    Returns:
        SHA-1 hex digest (40 characters)

    Raises:
        EncodingError: If body cannot be canonically encoded

    Example:
        >>> hash_as("blob", b"")
        'e69de29bb2d1d6434b8b29ae775ad8c2e48c5391'
    """
    hasher = hashlib.new(HASH_ALGORITHM)
    hasher.update(frame(object_type, body))
    return hasher.hexdigest()


# GitHub refuses to create these, so they are known up front
EMPTY_BLOB_HASH = hash_as(ObjectType.BLOB, b"")
EMPTY_TREE_HASH = hash_as(ObjectType.TREE, {})
