"""Recover fields GitHub drops from commits and tags.

GitHub strips trailing newlines from messages and forgets timezone
offsets, both of which are part of the hashed git encoding. When a loaded
object no longer hashes to the hash it was loaded by, these helpers guess
the lost values by trying plausible ones until the hash matches.
"""

import copy
from typing import Iterator, List, Union

from hubstore.constants import (
    REPAIR_MAX_NEWLINES,
    REPAIR_OFFSET_MAX,
    REPAIR_OFFSET_MIN,
    REPAIR_OFFSET_STEP,
)
from hubstore.models import Commit, ObjectType, Person, Tag
from hubstore.storage.hashing import hash_as


def candidate_offsets() -> Iterator[int]:
    """Yield every half-hour timezone offset from -12:00 to +12:00."""
    return iter(range(REPAIR_OFFSET_MIN, REPAIR_OFFSET_MAX + 1, REPAIR_OFFSET_STEP))


def _people(value: Union[Commit, Tag]) -> List[Person]:
    if isinstance(value, Commit):
        return [person for person in (value.author, value.committer) if person is not None]
    return [value.tagger]


def fix_date(object_type: Union[str, ObjectType], value: Union[Commit, Tag], expected_hash: str) -> bool:
    """Mutate a decoded commit or tag until it hashes to expected_hash.

    Tries the message as loaded and with up to two extra trailing newlines,
    each combined with every candidate offset applied to all dates on the
    object. On the first match the message and offsets are copied back onto
    ``value``; otherwise ``value`` is left untouched.

    Args:
        object_type: Type of the object; only commits and tags are repaired
        value: Decoded object to repair in place
        expected_hash: Hash the object was loaded by

    Returns:
        True if a matching combination was found
    """
    kind = ObjectType.parse(object_type)
    if kind not in (ObjectType.COMMIT, ObjectType.TAG):
        return False

    clone = copy.deepcopy(value)
    people = _people(clone)
    for _ in range(REPAIR_MAX_NEWLINES):
        for offset in candidate_offsets():
            for person in people:
                person.date.offset = offset
            if hash_as(kind, clone) != expected_hash:
                continue
            value.message = clone.message
            for original, fixed in zip(_people(value), people):
                original.date.offset = fixed.date.offset
            return True
        clone.message += "\n"
    return False
