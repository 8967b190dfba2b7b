"""Module that implements the read-only file system on top of the REST API client."""

from __future__ import annotations

import copy
import itertools
import posixpath
import threading
from typing import Iterator, List, Optional, Tuple

from bitbucketfs.client import (
    Client,
    Commit,
    ListCommits,
    ListDirectoryEntries,
    ListTags,
    OpenRawFile,
    PageIterator,
    RawContentStream,
    RemoteEntry,
    ResponseCache,
    Tag,
)
from bitbucketfs.config import CacheConfig, RepositoryConfig
from bitbucketfs.errors import (
    BitbucketError,
    error_context,
    InvalidPathError,
    NotFoundError,
    StatusError,
)
from .common import Attributes, join, valid_path


class BitbucketFileSystem:
    """
    Read-only file system backed by a repository on a Bitbucket Server.

    Paths are slash separated and relative to the root of the file system, which is a
    directory within the repository (the repository root by default). "." refers to the
    root itself. All contents are read at the configured revision reference, or the
    default branch if there is none.

    The REST API has no way to look up a single path, so open() lists the parent
    directory and scans it for the requested name. Every open() therefore costs as many
    requests as the parent listing has pages, although repeated listings are served
    from the response cache of the client.

    Every method that talks to the server accepts an optional cancellation token. Once
    the token is set, any request still in progress is aborted with CancelledError.
    """

    def __init__(
        self,
        config: RepositoryConfig,
        cache_config: Optional[CacheConfig] = None,
        client: Optional[Client] = None,
    ) -> None:
        """
        Instantiate a file system for the configured repository.

        The configuration is read once here and not referenced afterwards. A client is
        created along with its cache unless an existing one is passed in.
        """
        if client is None:
            if cache_config is None:
                cache_config = CacheConfig()

            client = Client(
                config.base_url,
                config.access_key,
                cache=ResponseCache(cache_config.max_entries, cache_config.ttl),
                max_body_size=cache_config.max_body_size,
                timeout=config.timeout,
            )

        self._client = client

        self._project_key = config.project_key
        self._repo_slug = config.repository_slug
        self._at = config.at
        self._page_size = config.page_size

        self._root = join(config.root)

    @property
    def client(self) -> Client:
        """Return the client used to access the repository."""
        return self._client

    @property
    def root(self) -> str:
        """Return the path within the repository that is the root of the file system."""
        return self._root

    def __repr__(self) -> str:
        return (
            f"BitbucketFileSystem({self._project_key}/{self._repo_slug}, "
            f"root={self._root!r}, at={self._at!r})"
        )

    #
    # Path based operations
    #

    def open(self, name: str, cancel: Optional[threading.Event] = None) -> RemoteFile:
        """
        Open the file or directory at the given path.

        Directories can be listed with read_dir() and files read with read(). Files are
        not actually fetched until they are first read.
        """
        with error_context(f"open {name}"):
            if not valid_path(name):
                raise InvalidPathError("invalid path")

            full_path = join(self._root, name)

            if full_path == ".":
                return RemoteFile(self, full_path, Attributes.for_directory(), cancel)

            parent, base = posixpath.split(full_path)
            entry = self._find_entry(parent, base, cancel)

            return RemoteFile(self, full_path, Attributes.from_entry(entry), cancel)

    def stat(self, name: str, cancel: Optional[threading.Event] = None) -> Attributes:
        """Retrieve the attributes of the file or directory at the given path."""
        return self.open(name, cancel).stat()

    def exists(self, name: str, cancel: Optional[threading.Event] = None) -> bool:
        """Check if there is a file or directory at the given path."""
        try:
            self.open(name, cancel)
        except NotFoundError:
            return False
        except StatusError as e:
            # The parent directory itself doesn't exist
            if e.status_code == 404:
                return False

            raise

        return True

    def listdir(
        self, name: str = ".", cancel: Optional[threading.Event] = None
    ) -> List[str]:
        """Return the names of the entries in a directory, in listing order."""
        return [f.name for f in self.open(name, cancel).read_dir()]

    def read_file(self, name: str, cancel: Optional[threading.Event] = None) -> bytes:
        """Read the entire contents of a file."""
        with self.open(name, cancel) as f:
            return f.read()

    def walk(
        self, top: str = ".", cancel: Optional[threading.Event] = None
    ) -> Iterator[Tuple[str, List[str], List[str]]]:
        """
        Walk the directory tree top-down, in the manner of os.walk().

        Yields a (dirpath, dirnames, filenames) tuple for every directory. Like with
        os.walk(), removing names from dirnames prevents those directories from being
        visited.
        """
        node = self.open(top, cancel)

        if not node.is_dir():
            raise InvalidPathError(f"walk {top}: not a directory")

        yield from self._walk(top, node)

    def _walk(
        self, path: str, node: RemoteFile
    ) -> Iterator[Tuple[str, List[str], List[str]]]:
        subdirs = {}
        filenames = []

        for child in node.read_dir():
            if child.is_dir():
                subdirs[child.name] = child
            else:
                filenames.append(child.name)

        dirnames = list(subdirs)

        yield path, dirnames, filenames

        for name in dirnames:
            if name in subdirs:
                yield from self._walk(join(path, name), subdirs[name])

    def sub(
        self, name: str, cancel: Optional[threading.Event] = None
    ) -> BitbucketFileSystem:
        """Return a file system with the directory at the given path as its root."""
        with error_context(f"sub {name}"):
            if not self.open(name, cancel).is_dir():
                raise InvalidPathError("not a directory")

        fs = copy.copy(self)
        fs._root = join(self._root, name)

        return fs

    #
    # Repository metadata
    #

    def tags(
        self, order_by: str = "", cancel: Optional[threading.Event] = None
    ) -> List[Tag]:
        """List all tags in the repository."""
        command = ListTags(
            project_key=self._project_key,
            repo_slug=self._repo_slug,
            order_by=order_by,
            limit=self._page_size,
        )

        with error_context("tags"):
            return list(self._client.iterate(command, cancel))

    def commits(
        self,
        commit_id: str = "",
        path: str = "",
        max_count: int = 0,
        cancel: Optional[threading.Event] = None,
    ) -> List[Commit]:
        """
        List commits, most recent first, or retrieve a single commit by its id.

        Commits are listed from the configured revision reference and can be limited to
        those touching a path within the file system. A max_count of 0 lists them all.
        """
        limit = self._page_size

        if max_count > 0:
            limit = min(limit, max_count)

        command = ListCommits(
            project_key=self._project_key,
            repo_slug=self._repo_slug,
            commit_id=commit_id,
            path=_listing_path(join(self._root, path)),
            until=self._at,
            limit=limit,
        )

        with error_context("commits"):
            commits = self._client.iterate(command, cancel)

            if max_count > 0:
                return list(itertools.islice(commits, max_count))

            return list(commits)

    #
    # Helpers shared with RemoteFile
    #

    def _list(
        self, path: str, cancel: Optional[threading.Event]
    ) -> PageIterator[RemoteEntry]:
        """Start listing the entries of the directory at a full path."""
        command = ListDirectoryEntries(
            project_key=self._project_key,
            repo_slug=self._repo_slug,
            path=_listing_path(path),
            at=self._at,
            limit=self._page_size,
        )

        return self._client.iterate(command, cancel)

    def _find_entry(
        self, parent: str, base: str, cancel: Optional[threading.Event]
    ) -> RemoteEntry:
        """
        Scan the listing of a directory for an entry with the given name.

        The whole listing is scanned and if a name were to appear more than once, the
        last occurrence is used.
        """
        found = None

        for entry in self._list(parent, cancel):
            if entry.name == base:
                found = entry

        if found is None:
            raise NotFoundError("no such file or directory")

        return found

    def _open_raw(
        self, path: str, cancel: Optional[threading.Event]
    ) -> RawContentStream:
        """Start streaming the contents of the file at a full path."""
        command = OpenRawFile(
            project_key=self._project_key,
            repo_slug=self._repo_slug,
            path=path,
            at=self._at,
        )

        return self._client.open(command, cancel)


class RemoteFile:
    """
    File or directory in a BitbucketFileSystem.

    The object is a snapshot of the entry at the time it was listed. Contents are
    fetched lazily: a directory is listed upon the first read_dir() call and a file is
    streamed from the server upon the first read. Instances are not safe to use from
    multiple threads at once.
    """

    def __init__(
        self,
        fs: BitbucketFileSystem,
        path: str,
        attributes: Attributes,
        cancel: Optional[threading.Event] = None,
    ) -> None:
        """Instantiate for the entry at the given full path."""
        self.path = path
        self.name = posixpath.basename(path) or path

        self._fs = fs
        self._attributes = attributes
        self._cancel = cancel

        self._stream: Optional[RawContentStream] = None

        self._dir_iter: Optional[PageIterator[RemoteEntry]] = None
        self._dir_error: Optional[BitbucketError] = None

    def __repr__(self) -> str:
        kind = "directory" if self.is_dir() else "file"
        return f"RemoteFile({self.path!r}, {kind})"

    def __enter__(self) -> RemoteFile:
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def is_dir(self) -> bool:
        """Return whether this is a directory."""
        return self._attributes.is_dir()

    def stat(self) -> Attributes:
        """Return the attributes of the file or directory."""
        return self._attributes

    def read_dir(self, n: int = 0) -> List[RemoteFile]:
        """
        Read the next entries of a directory.

        Returns at most n entries if n is positive, or all remaining entries otherwise.
        An empty list is returned once all entries have been read. Successive calls
        continue where the previous one left off. If listing fails then the same error
        is raised by this and every following call.
        """
        if self._dir_error is not None:
            raise self._dir_error

        entries: List[RemoteFile] = []

        try:
            with error_context(f"read_dir {self.path}"):
                if not self.is_dir():
                    raise InvalidPathError("not a directory")

                if self._dir_iter is None:
                    self._dir_iter = self._fs._list(self.path, self._cancel)

                for entry in self._dir_iter:
                    path = join(self.path, entry.name)
                    attributes = Attributes.from_entry(entry)
                    entries.append(RemoteFile(self._fs, path, attributes, self._cancel))

                    if len(entries) == n:
                        break
        except BitbucketError as e:
            self._dir_error = e
            raise

        return entries

    def read(self, size: int = -1) -> bytes:
        """
        Read up to size bytes, or everything until the end of the file if negative.

        Returns an empty bytes object at the end of the file.
        """
        with error_context(f"read {self.path}"):
            return self._open_stream().read(size)

    def readinto(self, buffer) -> int:
        """Read bytes into a pre-allocated buffer, returning how many were read."""
        with error_context(f"read {self.path}"):
            return self._open_stream().readinto(buffer)

    def close(self) -> None:
        """Release the connection used to read the file, if it was opened."""
        if self._stream is None:
            return

        stream = self._stream
        self._stream = None

        stream.close()

    def _open_stream(self) -> RawContentStream:
        if self.is_dir():
            raise InvalidPathError("is a directory")

        if self._stream is None:
            self._stream = self._fs._open_raw(self.path, self._cancel)

        return self._stream


def _listing_path(path: str) -> str:
    """Convert a full path into the form used by the API, where "" is the root."""
    return "" if path == "." else path
