"""Open a resolved file for download, checking it can really be read."""

import logging
import mimetypes
import os
import re
import stat
from collections import namedtuple
from pathlib import Path

from .errors import AccessDenied, IoFailure, NotFound

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"
CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def guess_content_type(filename):
    content_type, _encoding = mimetypes.guess_type(filename, strict=False)
    return content_type or DEFAULT_CONTENT_TYPE


class Download(namedtuple("Download", ["file", "content_type", "filename", "size"])):
    """An open binary file plus the metadata for its response headers."""

    __slots__ = ()

    def close(self):
        self.file.close()


def open_for_download(path):
    """Open ``path`` and test-read it so a broken stream is never returned.

    Raises ``NotFound`` if the path vanished or is not a regular file,
    ``AccessDenied`` if it can no longer be read and ``IoFailure`` otherwise.
    """
    path = Path(path)
    try:
        # stat first so special files such as FIFOs are never opened
        if not path.is_file():
            raise NotFound(detail=f"{path} is not a regular file")
        handle = open(path, "rb")
    except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as exc:
        raise NotFound(detail=str(exc)) from exc
    except PermissionError as exc:
        logger.warning("Permission denied opening %s: %s", path, exc)
        raise AccessDenied(detail=str(exc)) from exc
    except OSError as exc:
        logger.error("Cannot open file %s: %s", path, exc)
        raise IoFailure("Cannot open desired file.", detail=str(exc)) from exc

    try:
        info = os.fstat(handle.fileno())
        if not stat.S_ISREG(info.st_mode):
            raise NotFound(detail=f"{path} is not a regular file")
        handle.read(0)
    except NotFound:
        handle.close()
        raise
    except OSError as exc:
        handle.close()
        logger.error("Cannot read file %s: %s", path, exc)
        raise IoFailure("Cannot open desired file.", detail=str(exc)) from exc

    return Download(
        file=handle,
        content_type=guess_content_type(path.name),
        # header values cannot carry control characters
        filename=CONTROL_CHARS.sub("_", path.name),
        size=int(info.st_size),
    )
