import os
from pathlib import Path

import pytest

from cdn_server.app.errors import BadRequestError, INVALID_DIRECTORY, INVALID_FILENAME, INVALID_PATH
from cdn_server.app.services.path_resolver import (
    is_valid_segment,
    resolve_stored_path,
    resolve_upload_path,
    split_segments,
)


@pytest.fixture
def root(tmp_path):
    upload_root = tmp_path / "uploads"
    upload_root.mkdir()
    return upload_root


@pytest.mark.parametrize("directory", [None, "", "/", "///"])
def test_empty_directory_maps_to_root(root, directory):
    resolved = resolve_upload_path(root, directory, "cat.png")
    assert resolved.path == root / "cat.png"
    assert resolved.parent == root
    assert resolved.relative == "/cat.png"


@pytest.mark.parametrize("directory", ["pics", "/pics", "pics/", "/pics/", "//pics//"])
def test_directory_is_trimmed(root, directory):
    resolved = resolve_upload_path(root, directory, "cat.png")
    assert resolved.path == root / "pics" / "cat.png"
    assert resolved.relative == "/pics/cat.png"


def test_nested_directory_and_repeated_separators(root):
    resolved = resolve_upload_path(root, "a//b/c", "cat.png")
    assert resolved.path == root / "a" / "b" / "c" / "cat.png"
    assert resolved.parent == root / "a" / "b" / "c"
    assert resolved.relative == "/a/b/c/cat.png"


@pytest.mark.parametrize("directory", [
    "..",
    "../etc",
    "pics/../../etc",
    "pics/..",
    ".",
    "pics/./cats",
    "pics\\..\\etc",
    "pics\x00",
])
def test_unsafe_directory_is_rejected(root, directory):
    with pytest.raises(BadRequestError) as exc_info:
        resolve_upload_path(root, directory, "cat.png")
    assert exc_info.value.status_code == 400
    assert exc_info.value.message == INVALID_DIRECTORY


@pytest.mark.parametrize("filename", ["", ".", "..", "../cat.png", "a/b.png", "a\\b.png", "cat\x00.png"])
def test_unsafe_filename_is_rejected(root, filename):
    with pytest.raises(BadRequestError) as exc_info:
        resolve_upload_path(root, "pics", filename)
    assert exc_info.value.message == INVALID_FILENAME


def test_dotted_names_are_allowed(root):
    """Dots are fine as long as the whole segment isn't '.' or '..'."""
    resolved = resolve_upload_path(root, "v1.2/..hidden", "archive.tar.gz")
    assert resolved.path == root / "v1.2" / "..hidden" / "archive.tar.gz"


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks not supported")
def test_symlink_escaping_root_is_rejected(root, tmp_path):
    outside = tmp_path / "outside"
    outside.mkdir()
    (root / "link").symlink_to(outside, target_is_directory=True)

    with pytest.raises(BadRequestError) as exc_info:
        resolve_upload_path(root, "link", "cat.png")
    assert exc_info.value.message == INVALID_PATH


def test_stored_path(root):
    resolved = resolve_stored_path(root, "/pics/abc.png/")
    assert resolved.path == root / "pics" / "abc.png"
    assert resolved.relative == "/pics/abc.png"


@pytest.mark.parametrize("logical_path", ["", "/", "../secret", "pics/../../secret", "pics/."])
def test_stored_path_rejects_root_and_traversal(root, logical_path):
    with pytest.raises(BadRequestError) as exc_info:
        resolve_stored_path(root, logical_path)
    assert exc_info.value.message == INVALID_PATH


def test_split_segments():
    assert split_segments(None, "bad") == []
    assert split_segments("/a/b//c/", "bad") == ["a", "b", "c"]
    with pytest.raises(BadRequestError):
        split_segments("a/../b", "bad")


def test_is_valid_segment():
    assert is_valid_segment("cat.png")
    assert not is_valid_segment("")
    assert not is_valid_segment("..")
    assert not is_valid_segment("a/b")


def test_relative_root_is_supported(tmp_path, monkeypatch):
    """The default upload root is relative to the working directory."""
    monkeypatch.chdir(tmp_path)
    Path("uploads").mkdir()
    resolved = resolve_upload_path(Path("./uploads"), "pics", "cat.png")
    assert resolved.path == Path("uploads") / "pics" / "cat.png"
    assert resolved.relative == "/pics/cat.png"
