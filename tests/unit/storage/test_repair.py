"""Unit tests for the integrity repair heuristic."""

import copy

import pytest

from hubstore.constants import MODE_BLOB
from hubstore.models import Commit, Tag, TreeEntry
from hubstore.storage.hashing import hash_as
from hubstore.storage.repair import candidate_offsets, fix_date

from tests.conftest import make_person


def _strip(value):
    """Simulate GitHub: trailing newlines gone, every zone reset to UTC."""
    damaged = copy.deepcopy(value)
    damaged.message = damaged.message.rstrip("\n")
    people = [damaged.tagger] if isinstance(damaged, Tag) else [damaged.author, damaged.committer]
    for person in people:
        person.date.offset = 0
    return damaged


def _commit(offset: int, message: str) -> Commit:
    return Commit(
        tree="4b825dc642cb6eb9a060e54bf8d69288fbee4904",
        parents=["ce013625030ba8dba906f756967f9e9ca394464a"],
        author=make_person(offset=offset),
        committer=make_person("Grace Hopper", offset=offset, seconds=1400003600),
        message=message,
    )


class TestCandidateOffsets:
    """Test the offset search space."""

    def test_half_hour_grid(self) -> None:
        offsets = list(candidate_offsets())
        assert len(offsets) == 49
        assert offsets[0] == -720
        assert offsets[-1] == 720
        assert all(b - a == 30 for a, b in zip(offsets, offsets[1:]))


class TestFixDateCommit:
    """Test repairing commits."""

    @pytest.mark.parametrize("offset", [-720, -330, 0, 60, 480, 720])
    @pytest.mark.parametrize("message", ["Fix bug", "Fix bug\n", "Fix bug\n\n"])
    def test_recovers_message_and_offset(self, offset: int, message: str) -> None:
        original = _commit(offset, message)
        expected = hash_as("commit", original)
        damaged = _strip(original)

        assert fix_date("commit", damaged, expected) is True
        assert damaged == original
        assert hash_as("commit", damaged) == expected

    def test_already_correct(self) -> None:
        original = _commit(-120, "Done\n")
        value = copy.deepcopy(original)
        assert fix_date("commit", value, hash_as("commit", original)) is True
        assert value == original

    def test_offset_off_grid_fails(self) -> None:
        """A 15 minute shift is outside the search space."""
        original = _commit(-345, "Fix bug\n")
        damaged = _strip(original)
        before = copy.deepcopy(damaged)

        assert fix_date("commit", damaged, hash_as("commit", original)) is False
        assert damaged == before

    def test_too_many_newlines_fails(self) -> None:
        original = _commit(0, "Fix bug\n\n\n")
        damaged = _strip(original)
        assert fix_date("commit", damaged, hash_as("commit", original)) is False

    def test_different_author_and_committer_zones_fail(self) -> None:
        original = _commit(-60, "Fix\n")
        original.committer.date.offset = 120
        damaged = _strip(original)
        assert fix_date("commit", damaged, hash_as("commit", original)) is False


class TestFixDateTag:
    """Test repairing tags."""

    def test_recovers_tag(self, sample_tag: Tag) -> None:
        sample_tag.tagger = make_person(offset=-540)
        sample_tag.message = "Release\n"
        expected = hash_as("tag", sample_tag)
        damaged = _strip(sample_tag)

        assert fix_date("tag", damaged, expected) is True
        assert damaged == sample_tag


class TestFixDateOtherTypes:
    """Only commits and tags carry dates."""

    def test_tree_is_never_repaired(self) -> None:
        tree = {"x": TreeEntry(MODE_BLOB, "ce013625030ba8dba906f756967f9e9ca394464a")}
        assert fix_date("tree", tree, "0" * 40) is False

    def test_blob_is_never_repaired(self) -> None:
        assert fix_date("blob", b"data", "0" * 40) is False
