"""Turn untrusted request input into filesystem paths under the upload root.

Both the upload query parameter ``directory`` and the delete route's path
pass through here. Segments are split on ``/``; empty segments collapse, and
``.``/``..`` or segments carrying a backslash or NUL byte are rejected rather
than normalized, so a request can never address anything outside the root.
"""
from pathlib import Path
from typing import List, NamedTuple, Optional

from cdn_server.app.errors import (
    BadRequestError,
    INVALID_DIRECTORY,
    INVALID_FILENAME,
    INVALID_PATH,
)

FORBIDDEN_SEGMENTS = {".", ".."}
FORBIDDEN_CHARACTERS = ("\\", "\x00")


class ResolvedPath(NamedTuple):
    path: Path
    parent: Path
    relative: str  # server-relative, always starts with "/"


def is_valid_segment(segment: str) -> bool:
    """Check a single path segment (no separators allowed)."""
    if not segment or segment in FORBIDDEN_SEGMENTS:
        return False
    if "/" in segment:
        return False
    return not any(char in segment for char in FORBIDDEN_CHARACTERS)


def split_segments(value: Optional[str], message: str) -> List[str]:
    """Split a slash-separated logical path, dropping empty segments.

    Raises BadRequestError with ``message`` if any segment is unsafe.
    """
    if not value:
        return []

    segments = [segment for segment in value.strip("/").split("/") if segment]
    for segment in segments:
        if not is_valid_segment(segment):
            raise BadRequestError(message)
    return segments


def _ensure_inside_root(root: Path, path: Path) -> None:
    # Catches symlinks inside the tree that point elsewhere
    resolved_root = root.resolve()
    resolved = path.resolve()
    if resolved != resolved_root and resolved_root not in resolved.parents:
        raise BadRequestError(INVALID_PATH)


def _build(root: Path, segments: List[str]) -> ResolvedPath:
    path = root.joinpath(*segments)
    _ensure_inside_root(root, path)
    return ResolvedPath(
        path=path,
        parent=path.parent,
        relative="/" + "/".join(segments),
    )


def resolve_upload_path(root: Path, directory: Optional[str], filename: str) -> ResolvedPath:
    """Compose ``root/directory/filename`` for an upload.

    An absent or empty directory maps to the upload root itself.
    """
    segments = split_segments(directory, INVALID_DIRECTORY)
    if not is_valid_segment(filename):
        raise BadRequestError(INVALID_FILENAME)
    return _build(root, segments + [filename])


def resolve_stored_path(root: Path, logical_path: str) -> ResolvedPath:
    """Resolve the path of an already stored file, e.g. ``pics/abc.png``."""
    segments = split_segments(logical_path, INVALID_PATH)
    if not segments:
        raise BadRequestError(INVALID_PATH)
    return _build(root, segments)
