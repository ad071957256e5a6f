"""Map an untrusted request path onto a location inside the served root."""

import logging
import ntpath
from pathlib import Path

from .errors import InvalidRequestPath, IoFailure, NotFound, TraversalRejected

logger = logging.getLogger(__name__)


def check_request_path(requested):
    """Reject paths that are unsafe before touching the filesystem."""
    if requested.startswith(("/", "\\")):
        raise InvalidRequestPath(detail=f"leading separator in {requested!r}")
    if "\\" in requested:
        raise InvalidRequestPath(detail=f"backslash in {requested!r}")
    if "\x00" in requested:
        raise InvalidRequestPath(detail=f"NUL byte in {requested!r}")
    # "C:foo" is relative to a drive on Windows; treat any drive as absolute
    if ntpath.splitdrive(requested)[0]:
        raise InvalidRequestPath(detail=f"drive prefix in {requested!r}")
    if any(segment == ".." for segment in requested.split("/")):
        raise InvalidRequestPath(detail=f"parent segment in {requested!r}")


def canonical_root(root):
    try:
        return Path(root).resolve(strict=True)
    except (OSError, RuntimeError) as exc:
        raise IoFailure("Failed to access root", detail=str(exc)) from exc


def resolve(root, requested):
    """Return the canonical path for ``requested`` below ``root``.

    The returned path is ``root`` itself or one of its descendants. Symlinks
    are followed, so a link inside the tree pointing elsewhere is rejected
    with ``TraversalRejected``. Anything that cannot be canonicalised
    (missing, dangling link, no permission) is ``NotFound``.
    """
    try:
        check_request_path(requested)
    except InvalidRequestPath as exc:
        logger.warning("Rejected request path %r: %s", requested, exc.detail)
        raise

    base = canonical_root(root)
    joined = base / requested if requested else base
    try:
        candidate = joined.resolve(strict=True)
    except (OSError, RuntimeError) as exc:
        logger.info("Not found: %r (%s)", requested, exc)
        raise NotFound(detail=str(exc)) from exc

    if not candidate.is_relative_to(base):
        logger.warning("Traversal attempt: %r resolves to %s outside %s", requested, candidate, base)
        raise TraversalRejected(detail=f"{candidate} is outside {base}")
    return candidate
