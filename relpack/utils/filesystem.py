# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Durable file copy for relpack.

The strip step rewrites the artifact in place, so it must never see a copy
that is still half-written or still sitting in the page cache. We copy into
a temp file next to the destination, fsync it, copy the permission bits and
only then rename it over the destination. Rename on the same filesystem is
atomic on POSIX: the destination is either the old file or the complete new
one, never a partial mess.
"""

import errno
import os
import shutil
import tempfile
from pathlib import Path

COPY_BUFFER_SIZE = 1024 * 1024


def durable_copy(source: Path, destination: Path) -> None:
    """
    Copy `source` to `destination` byte for byte, flushed to storage.

    An existing regular file at `destination` is replaced if this process
    could write to it, the same rule `cp` applies. A read-only file raises
    PermissionError and a directory raises IsADirectoryError; neither is
    touched, and the temp file is removed.

    Args:
        source: File to copy.
        destination: Where the copy should end up. Its parent must exist.

    Raises:
        OSError: If reading, writing, syncing or renaming fails.
    """
    if destination.exists() and not destination.is_dir() and not os.access(destination, os.W_OK):
        raise PermissionError(errno.EACCES, "Destination is not writable", str(destination))

    temp_fd = tempfile.NamedTemporaryFile(
        mode="wb",
        dir=str(destination.parent),
        prefix=".relpack_tmp_",
        suffix=".tmp",
        delete=False,
    )
    temp_path = Path(temp_fd.name)

    try:
        with open(source, "rb") as src:
            shutil.copyfileobj(src, temp_fd, COPY_BUFFER_SIZE)
        temp_fd.flush()
        os.fsync(temp_fd.fileno())
        temp_fd.close()
        shutil.copymode(source, temp_path)
        if destination.is_dir():
            raise IsADirectoryError(f"Destination is a directory: {destination}")
        os.replace(temp_path, destination)
    except BaseException:
        temp_fd.close()
        if temp_path.exists():
            temp_path.unlink()
        raise

    _fsync_directory(destination.parent)


def _fsync_directory(directory: Path) -> None:
    """Persist the rename itself. Windows can't open a directory for syncing."""
    if os.name != "posix":
        return
    dir_fd = os.open(str(directory), os.O_RDONLY)
    try:
        os.fsync(dir_fd)
    finally:
        os.close(dir_fd)
