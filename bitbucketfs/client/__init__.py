"""
Client for the Bitbucket Server REST API.

Remote operations are modelled as commands (see the commands module) that are executed
by a Client. Responses are cached in memory by request URL so that walking a directory
tree doesn't fetch the same listing over and over again. Paginated listings can be
consumed as a plain iterator that fetches pages as it goes.
"""

from .cache import ResponseCache
from .client import Client, SecretString
from .commands import (
    Command,
    Commit,
    FetchFileContent,
    ListCommits,
    ListDirectoryEntries,
    ListTags,
    OpenRawFile,
    Page,
    PageCursor,
    PagedCommand,
    Person,
    RemoteEntry,
    Tag,
)
from .iterator import PageIterator
from .stream import RawContentStream

__all__ = [
    "Client",
    "Command",
    "Commit",
    "FetchFileContent",
    "ListCommits",
    "ListDirectoryEntries",
    "ListTags",
    "OpenRawFile",
    "Page",
    "PageCursor",
    "PagedCommand",
    "PageIterator",
    "Person",
    "RawContentStream",
    "RemoteEntry",
    "ResponseCache",
    "SecretString",
    "Tag",
]
