"""Translation between git objects and GitHub's git data JSON.

Every encoder returns the request body the corresponding ``POST
/repos/:root/git/<type>s`` endpoint expects, and every decoder accepts the
body GitHub returns from ``GET /repos/:root/git/<type>s/<sha>``.
"""

import base64
import binascii
import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Union

from hubstore.constants import MODE_TO_TYPE
from hubstore.errors import EncodingError
from hubstore.models import Commit, GitDate, ObjectType, Person, Tag, Tree, TreeEntry
from hubstore.storage.hashing import EMPTY_BLOB_HASH

_ZONE_RE = re.compile(r"([+-])([0-9]{2}):([0-9]{2})$")


def mode_to_string(mode: int) -> str:
    """Render a mode as the 6 character octal string GitHub expects.

    Example:
        >>> mode_to_string(0o40000)
        '040000'
    """
    return f"{mode:06o}"


def mode_to_type(mode: int) -> str:
    """Look up the entry type ("tree", "blob" or "commit") for a mode.

    Raises:
        EncodingError: If mode is not a valid tree entry mode
    """
    try:
        return MODE_TO_TYPE[mode_to_string(mode)]
    except (KeyError, TypeError, ValueError) as e:
        raise EncodingError(f"Invalid tree entry mode: {mode!r}") from e


def encode_date(date: GitDate) -> str:
    """Render a git date as an ISO-8601 string with a ``+HH:MM`` suffix.

    The instant is shifted into local time and the zone suffix carries the
    opposite sign of the stored offset (minutes west of UTC), which is how
    git's ``+HHMM`` notation reads. Sub-second precision is dropped.

    Example:
        >>> encode_date(GitDate(seconds=1400000000, offset=-330))
        '2014-05-13T22:23:20+05:30'
    """
    local_seconds = int(date.seconds) - date.offset * 60
    moment = datetime.fromtimestamp(local_seconds, tz=timezone.utc)
    sign = "-" if date.offset > 0 else "+"
    hours, minutes = divmod(abs(date.offset), 60)
    return f"{moment.strftime('%Y-%m-%dT%H:%M:%S')}{sign}{hours:02d}:{minutes:02d}"


def parse_date(text: str) -> GitDate:
    """Parse an ISO-8601 timestamp as returned by GitHub.

    A trailing ``+HH:MM``/``-HH:MM`` sets the offset; anything else
    (including ``Z``) means offset 0.

    Raises:
        EncodingError: If text is not an ISO-8601 timestamp
    """
    iso = text[:-1] + "+00:00" if text.endswith("Z") else text
    try:
        moment = datetime.fromisoformat(iso)
    except (TypeError, ValueError) as e:
        raise EncodingError(f"Invalid date: {text!r}") from e
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)

    offset = 0
    match = _ZONE_RE.search(text)
    if match:
        minutes = int(match.group(2)) * 60 + int(match.group(3))
        offset = minutes if match.group(1) == "-" else -minutes
    return GitDate(seconds=int(moment.timestamp()), offset=offset)


def encode_person(person: Person) -> Dict[str, str]:
    return {
        "name": person.name,
        "email": person.email,
        "date": encode_date(person.date),
    }


def decode_person(result: Mapping[str, Any]) -> Person:
    return Person(
        name=result["name"],
        email=result["email"],
        date=parse_date(result["date"]),
    )


def commit_from_dict(data: Mapping[str, Any]) -> Commit:
    """Build a Commit from a loose mapping.

    Accepts either ``parents`` or a single ``parent``; neither means a root
    commit.

    Raises:
        EncodingError: If tree or message is missing, or a person is not a
            :class:`Person`
    """
    missing = [key for key in ("tree", "message") if key not in data]
    if missing:
        raise EncodingError(f"Commit is missing {', '.join(missing)}")
    for role in ("author", "committer"):
        value = data.get(role)
        if value is not None and not isinstance(value, Person):
            raise EncodingError(f"Commit {role} must be a Person, got {type(value).__name__}")
    if data.get("parents") is not None:
        parents = list(data["parents"])
    elif data.get("parent"):
        parents = [data["parent"]]
    else:
        parents = []
    return Commit(
        tree=data["tree"],
        message=data["message"],
        parents=parents,
        author=data.get("author"),
        committer=data.get("committer"),
    )


def encode_commit(commit: Union[Commit, Mapping[str, Any]]) -> Dict[str, Any]:
    if isinstance(commit, Mapping):
        commit = commit_from_dict(commit)
    out: Dict[str, Any] = {
        "message": commit.message,
        "tree": commit.tree,
        "parents": list(commit.parents),
    }
    if commit.author is not None:
        out["author"] = encode_person(commit.author)
    if commit.committer is not None:
        out["committer"] = encode_person(commit.committer)
    return out


def _sha(value: Any) -> str:
    # GET responses nest references as {"sha": ...}, requests use bare hashes
    if isinstance(value, Mapping):
        return value["sha"]
    return value


def decode_commit(result: Mapping[str, Any]) -> Commit:
    return Commit(
        tree=_sha(result["tree"]),
        parents=[_sha(parent) for parent in result["parents"]],
        author=decode_person(result["author"]) if result.get("author") else None,
        committer=decode_person(result["committer"]) if result.get("committer") else None,
        message=result["message"],
    )


def encode_tag(tag: Tag) -> Dict[str, Any]:
    if tag.tagger is None:
        raise EncodingError("Tag requires a tagger")
    return {
        "tag": tag.tag,
        "message": tag.message,
        "object": tag.object,
        "type": tag.type,
        "tagger": encode_person(tag.tagger),
    }


def decode_tag(result: Mapping[str, Any]) -> Tag:
    target = result["object"]
    return Tag(
        object=_sha(target),
        type=target["type"] if isinstance(target, Mapping) else result["type"],
        tag=result["tag"],
        tagger=decode_person(result["tagger"]),
        message=result["message"],
    )


def encode_tree(tree: Tree) -> Dict[str, Any]:
    entries = []
    for name, entry in tree.items():
        entries.append({
            "path": name,
            "mode": mode_to_string(entry.mode),
            "type": mode_to_type(entry.mode),
            "sha": entry.hash,
        })
    return {"tree": entries}


def decode_tree(result: Mapping[str, Any]) -> Tree:
    tree: Tree = {}
    for entry in result["tree"]:
        tree[entry["path"]] = TreeEntry(mode=int(entry["mode"], 8), hash=entry["sha"])
    return tree


def encode_blob(blob: Any) -> Dict[str, str]:
    if isinstance(blob, str):
        return {"content": blob, "encoding": "utf-8"}
    if isinstance(blob, (bytes, bytearray, memoryview)):
        return {
            "content": base64.b64encode(bytes(blob)).decode("ascii"),
            "encoding": "base64",
        }
    raise EncodingError("Invalid blob type, must be binary or string")


def decode_blob(result: Mapping[str, Any]) -> Union[bytes, str]:
    encoding = result.get("encoding")
    if encoding == "base64":
        # GitHub wraps base64 payloads at 60 columns
        try:
            return base64.b64decode(result["content"].replace("\n", ""))
        except (binascii.Error, ValueError) as e:
            raise EncodingError(f"Invalid base64 blob content: {e}") from e
    if encoding == "utf-8":
        return result["content"]
    raise EncodingError(f"Unknown blob encoding: {encoding}")


def map_tree_entry(entry: Mapping[str, Any]) -> Dict[str, Any]:
    """Convert a tree change entry into a GitHub tree-creation item.

    Args:
        entry: Mapping with ``path``, ``mode`` and either ``hash`` or
            ``content``

    Raises:
        EncodingError: If the entry has no mode
    """
    if not entry.get("mode"):
        raise EncodingError(f"Invalid tree entry: {entry.get('path')!r} has no mode")
    mode = mode_to_string(entry["mode"])
    item: Dict[str, Any] = {
        "path": entry["path"],
        "mode": mode,
        "type": mode_to_type(entry["mode"]),
    }
    content = entry.get("content")
    sha = entry.get("hash")
    # GitHub rejects empty contents
    if content is not None and len(content) == 0:
        sha = EMPTY_BLOB_HASH
    if sha:
        item["sha"] = sha
    else:
        item["content"] = content
    return item


ENCODERS: Dict[ObjectType, Callable[[Any], Dict[str, Any]]] = {
    ObjectType.COMMIT: encode_commit,
    ObjectType.TAG: encode_tag,
    ObjectType.TREE: encode_tree,
    ObjectType.BLOB: encode_blob,
}

DECODERS: Dict[ObjectType, Callable[[Mapping[str, Any]], Any]] = {
    ObjectType.COMMIT: decode_commit,
    ObjectType.TAG: decode_tag,
    ObjectType.TREE: decode_tree,
    ObjectType.BLOB: decode_blob,
}


def encode(object_type: Union[str, ObjectType], body: Any) -> Dict[str, Any]:
    """Encode an object as the request body for its creation endpoint.

    Raises:
        EncodingError: If body cannot be represented
    """
    try:
        return ENCODERS[ObjectType.parse(object_type)](body)
    except EncodingError:
        raise
    except (KeyError, TypeError, AttributeError) as e:
        raise EncodingError(f"Cannot encode {object_type}: {e}") from e


def decode(object_type: Union[str, ObjectType], result: Mapping[str, Any]) -> Any:
    """Decode a GitHub response into the in-memory object.

    Raises:
        EncodingError: If the response is malformed
    """
    try:
        return DECODERS[ObjectType.parse(object_type)](result)
    except EncodingError:
        raise
    except (KeyError, TypeError, AttributeError) as e:
        raise EncodingError(f"Malformed {object_type} response: {e}") from e
