"""File-backed download sinks and upload bodies.

Both classes open their file *before* a transfer is dispatched so that a
missing directory or unreadable file is reported without touching the
network, and both close it exactly once however the transfer ends.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import IO, Optional, Union

from chainhttp.exceptions import LocalFileError

PathArg = Union[str, os.PathLike]


class FileSink:
    """Writes downloaded chunks to a file.

    Args:
        path: Destination path. Truncated if it already exists.

    Example::

        sink = FileSink("dog.png")
        sink.open()
        sink.write(b"...")
        sink.close()
    """

    def __init__(self, path: PathArg) -> None:
        self.path = Path(path)
        self.bytes_written = 0
        self._file: Optional[IO[bytes]] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def open(self) -> None:
        """Open the destination for writing.

        Raises:
            LocalFileError: If the file cannot be created or truncated.
        """
        try:
            self._file = open(self.path, "wb")
        except OSError as exc:
            raise LocalFileError(
                f"Cannot open file for writing: {self.path} ({exc.strerror or exc})"
            ) from exc

    def write(self, chunk: bytes) -> None:
        """Append *chunk* to the file.

        Raises:
            LocalFileError: If the write fails (disk full, file closed).
        """
        if self._file is None:
            raise LocalFileError(f"File is not open for writing: {self.path}")
        try:
            self._file.write(chunk)
        except OSError as exc:
            raise LocalFileError(
                f"Cannot write to file: {self.path} ({exc.strerror or exc})"
            ) from exc
        self.bytes_written += len(chunk)

    def close(self) -> None:
        """Flush and close the file. Only the first call has any effect."""
        if self._closed:
            return
        self._closed = True
        if self._file is not None:
            try:
                self._file.flush()
            finally:
                self._file.close()
                self._file = None


class UploadBody:
    """A multipart/form-data body holding one file part named ``file``.

    The open file handle lives exactly as long as this object: it is opened
    by :meth:`open` and closed by :meth:`close`, which the executor calls
    once the transfer finishes, whatever the outcome.
    """

    FIELD_NAME = "file"

    def __init__(self, path: PathArg) -> None:
        self.path = Path(path)
        self._file: Optional[IO[bytes]] = None
        self._closed = False

    @property
    def filename(self) -> str:
        """Base name sent in the part's ``Content-Disposition``."""
        return self.path.name

    @property
    def closed(self) -> bool:
        return self._closed

    def open(self) -> None:
        """Open the source file read-only.

        Raises:
            LocalFileError: If the file does not exist or cannot be read.
        """
        try:
            self._file = open(self.path, "rb")
        except OSError as exc:
            raise LocalFileError(
                f"Cannot open file for reading: {self.path} ({exc.strerror or exc})"
            ) from exc

    @property
    def files(self) -> dict[str, tuple[str, IO[bytes]]]:
        """The ``files=`` mapping handed to ``httpx``."""
        if self._file is None:
            raise LocalFileError(f"File is not open for reading: {self.path}")
        return {self.FIELD_NAME: (self.filename, self._file)}

    def close(self) -> None:
        """Release the file handle. Only the first call has any effect."""
        if self._closed:
            return
        self._closed = True
        if self._file is not None:
            self._file.close()
            self._file = None
