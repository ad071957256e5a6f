"""Directory enumeration with a deterministic, presenter-facing order."""

import logging
import os
import stat
from collections import namedtuple

from .errors import IoFailure

logger = logging.getLogger(__name__)

# size is 0 for directories, modified is None when the filesystem has no mtime
DirectoryEntry = namedtuple("DirectoryEntry", ["name", "size", "modified", "is_dir"])
Listing = namedtuple("Listing", ["request_path", "entries"])


def is_utf8_name(name):
    # os.scandir hands undecodable bytes back as surrogate escapes
    try:
        name.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def readable_entries(children):
    """Yield entries for children we can name and stat, dropping the rest.

    Children with non-UTF-8 names or unreadable metadata are skipped rather
    than failing the whole listing.
    """
    for child in children:
        if not is_utf8_name(child.name):
            logger.debug("Skipping non UTF-8 name %r", child.name)
            continue
        try:
            info = child.stat()
        except OSError as exc:
            logger.debug("Skipping %r: %s", child.name, exc)
            continue
        is_dir = stat.S_ISDIR(info.st_mode)
        yield DirectoryEntry(
            name=child.name,
            size=0 if is_dir else int(info.st_size),
            modified=getattr(info, "st_mtime", None),
            is_dir=is_dir,
        )


def sort_entries(entries):
    """Directories first, then case-insensitive name order."""
    return tuple(sorted(entries, key=lambda entry: (not entry.is_dir, entry.name.lower(), entry.name)))


def list_directory(directory, request_path=""):
    """List the immediate children of ``directory``.

    Raises ``IoFailure`` if the directory cannot be opened, e.g. it was
    removed after resolution or is not a directory.
    """
    try:
        with os.scandir(directory) as children:
            entries = sort_entries(readable_entries(children))
    except OSError as exc:
        logger.error("Failed to read directory %s: %s", directory, exc)
        raise IoFailure("Failed to read directory", detail=str(exc)) from exc
    return Listing(request_path=request_path, entries=entries)
