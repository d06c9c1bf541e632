"""
Archive builder.

Bundles every uploaded file into one in-memory ZIP. Sources are copied into
their entries in fixed-size chunks, so an upload spooled to a temporary file
is never read into memory in one piece before archiving starts.

Public API:
  build_archive(sources) -> bytes
  archive_name(product_name, processed_on) -> str
"""

import io
import logging
import warnings
import zipfile
from dataclasses import dataclass
from datetime import date
from pathlib import Path, PureWindowsPath
from typing import BinaryIO, Iterable, Union

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


class ArchiveBuildFailed(Exception):
    """Raised when any source cannot be read. No partial archive is returned."""

    def __init__(self, message: str, filename: str | None = None):
        super().__init__(message)
        self.message = message
        self.filename = filename


@dataclass(frozen=True)
class ArchiveSource:
    """One file to archive: a display name plus an open binary stream or a path."""

    name: str
    source: Union[BinaryIO, str, Path]


def entry_name(original: str) -> str:
    """
    Base name of an uploaded filename, with any directory parts removed.

    Browsers may send "C:\\Users\\me\\report.pdf" or "folder/report.pdf";
    both become "report.pdf". An empty name falls back to "file".
    """
    name = PureWindowsPath(original or "").name
    return name or "file"


def archive_name(product_name: str, processed_on: date) -> str:
    """Deterministic download name, e.g. ``XyloMail_Files_2025-01-31.zip``."""
    return f"{product_name}_Files_{processed_on.isoformat()}.zip"


def _copy_into(zf: zipfile.ZipFile, name: str, source: Union[BinaryIO, str, Path]) -> None:
    if isinstance(source, (str, Path)):
        with open(source, "rb") as fh:
            _copy_into(zf, name, fh)
        return

    if source.seekable():
        source.seek(0)
    with zf.open(name, mode="w") as dest:
        while True:
            chunk = source.read(_CHUNK_SIZE)
            if not chunk:
                break
            dest.write(chunk)


def build_archive(sources: Iterable[ArchiveSource]) -> bytes:
    """
    Write every source into a single deflate-compressed ZIP and return its bytes.

    Same-named sources are all written; readers resolve the name to the last
    entry, so the last file with a given name wins on extraction.

    Raises:
        ArchiveBuildFailed: if any source is missing, closed or unreadable.
    """
    buffer = io.BytesIO()
    seen: set[str] = set()

    try:
        with zipfile.ZipFile(buffer, mode="w", compression=zipfile.ZIP_DEFLATED) as zf:
            for item in sources:
                name = entry_name(item.name)
                if name in seen:
                    logger.info(f"Archive already holds '{name}'; the later file will take precedence")
                seen.add(name)
                try:
                    with warnings.catch_warnings():
                        # zipfile warns on duplicate entry names
                        warnings.simplefilter("ignore", UserWarning)
                        _copy_into(zf, name, item.source)
                except (OSError, ValueError) as e:
                    raise ArchiveBuildFailed(f"Could not read '{name}': {e}", filename=name) from e
    except ArchiveBuildFailed:
        logger.error("Archive build failed; discarding partial archive")
        raise
    except (OSError, zipfile.BadZipFile, zipfile.LargeZipFile) as e:
        raise ArchiveBuildFailed(f"Could not build archive: {e}") from e

    return buffer.getvalue()
