"""Basic smoke tests to verify project setup."""

from hubstore import __version__


def test_version() -> None:
    """Test that version is correctly defined."""
    assert __version__ == "0.1.0"


def test_import_storage() -> None:
    """Test that storage module can be imported."""
    from hubstore import storage  # noqa: F401


def test_import_remote() -> None:
    """Test that remote module can be imported."""
    from hubstore import remote  # noqa: F401


def test_import_cli() -> None:
    """Test that cli module can be imported."""
    from hubstore.cli import main  # noqa: F401


def test_store_fixture(store, github) -> None:
    """Test that the store fixture talks to the fake remote."""
    assert store.request is github
    assert len(store.type_cache) == 0
