"""Data structures and helpers used by multiple file system components."""

from __future__ import annotations

from dataclasses import dataclass
import posixpath
import stat

from bitbucketfs.client import RemoteEntry

# Repository contents are exposed read-only
DIRECTORY_MODE = stat.S_IFDIR | 0o555
FILE_MODE = stat.S_IFREG | 0o444


@dataclass(frozen=True)
class Attributes:
    """
    Container of file system attributes (a subset of os.stat_result as a dataclass).

    The remote listing only provides the kind of entry and, for files, its size. Other
    attributes have fixed values.
    """

    st_mode: int
    st_size: int = 0
    st_nlink: int = 1
    st_uid: int = 0
    st_gid: int = 0
    st_atime_ns: int = 0
    st_mtime_ns: int = 0
    st_ctime_ns: int = 0

    @staticmethod
    def for_directory() -> Attributes:
        """Instantiate the attributes of a directory."""
        return Attributes(st_mode=DIRECTORY_MODE, st_nlink=2)

    @staticmethod
    def from_entry(entry: RemoteEntry) -> Attributes:
        """Instantiate from an entry in a directory listing."""
        if entry.is_dir():
            return Attributes.for_directory()

        return Attributes(st_mode=FILE_MODE, st_size=entry.size)

    def is_dir(self) -> bool:
        """Return whether the attributes describe a directory."""
        return stat.S_ISDIR(self.st_mode)


def valid_path(name: str) -> bool:
    """
    Check if a name is a well-formed path relative to the file system root.

    Paths are slash separated and unrooted, with no empty, "." or ".." elements. The
    only exception is "." itself, which refers to the root.
    """
    if name == ".":
        return True

    if not name:
        return False

    return all(element not in ("", ".", "..") for element in name.split("/"))


def join(*paths: str) -> str:
    """
    Join path elements into a clean relative path, skipping empty elements.

    Returns "." if the result would otherwise be empty.
    """
    joined = posixpath.join(*[p for p in paths if p]) if any(paths) else ""
    cleaned = posixpath.normpath(joined) if joined else "."

    return cleaned.lstrip("/") or "."
