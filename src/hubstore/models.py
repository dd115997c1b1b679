"""In-memory git object model.

Commits, tags and tree entries are small dataclasses; a tree is a plain
dict of name -> TreeEntry and a blob is ``bytes`` (or ``str`` for text).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Union

from hubstore.errors import InputError


class ObjectType(str, Enum):
    """The four git object kinds."""

    TAG = "tag"
    COMMIT = "commit"
    TREE = "tree"
    BLOB = "blob"

    @classmethod
    def parse(cls, value: Union[str, "ObjectType"]) -> "ObjectType":
        """Coerce a type name to an ObjectType.

        Raises:
            InputError: If value is not one of the four object kinds
        """
        try:
            return cls(value)
        except ValueError as e:
            raise InputError(f"Unknown object type: {value!r}") from e


@dataclass
class GitDate:
    """A timestamp as git stores it.

    Attributes:
        seconds: Seconds since the epoch (UTC)
        offset: Minutes *west* of UTC, matching JavaScript's
            getTimezoneOffset(); +05:30 is stored as -330
    """

    seconds: int
    offset: int = 0


@dataclass
class Person:
    name: str
    email: str
    date: GitDate


@dataclass
class Commit:
    """A commit. Author and committer are needed to hash, not to encode."""

    tree: str
    message: str
    parents: List[str] = field(default_factory=list)
    author: Optional[Person] = None
    committer: Optional[Person] = None


@dataclass
class Tag:
    object: str
    type: str
    tag: str
    tagger: Person
    message: str


@dataclass
class TreeEntry:
    mode: int
    hash: str


Tree = Dict[str, TreeEntry]
Blob = Union[bytes, str]
GitObject = Union[Commit, Tag, Tree, Blob]
