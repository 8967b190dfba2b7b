"""
Modules that expose a remote repository as a read-only file system.

Bitbucket Server has no notion of a file system. It offers flat, paginated listings of
directories and endpoints that return the contents of a single file, all addressed by
URL. The file system in this package maps path based operations like open(), stat()
and listing a directory onto those endpoints:

* Opening a path lists its parent directory and looks for the name in it.
* Listing a directory walks through the pages of its listing as entries are consumed.
* Reading a file streams the raw contents from the server on first access.

Listings are cached in memory by the client, so walking a tree doesn't request the
same listing twice. File contents are streamed and never cached.
"""

from .common import Attributes
from .filesystem import BitbucketFileSystem, RemoteFile

__all__ = [
    "Attributes",
    "BitbucketFileSystem",
    "RemoteFile",
]
