"""
Zip archives attached to orders.
"""

import io
import zipfile
from dataclasses import dataclass
from typing import Optional

from ..errors import NilArchiveError, NoFilesError, ZipError


@dataclass(frozen=True)
class ArchiveFile:
    """File to put into an archive"""
    filename: str  # Name with extension, e.g. "req_346ee59c-a428-42f6-342e-c780dd2e278e.xml"
    data: bytes


@dataclass(frozen=True)
class Archive:
    """Zip archive to upload"""
    name: str  # Name without extension, e.g. "35002123456-archive"
    data: bytes

    @classmethod
    def from_files(cls, name: str, *files: ArchiveFile) -> "Archive":
        """
        Create an archive from files.

        Raises:
            NoFilesError: If no files were given
            ZipError: If the zip archive cannot be written
        """
        if not files:
            raise NoFilesError()

        buffer = io.BytesIO()
        try:
            with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
                for file in files:
                    zf.writestr(file.filename, file.data)
        except (OSError, ValueError, zipfile.BadZipFile) as e:
            raise ZipError(e) from e

        return cls(name=name, data=buffer.getvalue())


def validate_archive(archive: Optional[Archive]) -> Archive:
    """Reject a missing archive or one without data."""
    if archive is None or not archive.data:
        raise NilArchiveError()
    return archive
