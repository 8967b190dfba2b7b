"""
Module defining the remote operations that can be executed by the client.

Every operation is a command: an immutable value that holds the repository coordinates
it needs, and knows how to validate itself, build its request URL and parse the
response body into a typed result. The client does not need to know anything about
individual commands and simply runs them through the same pipeline.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import dataclasses
from dataclasses import dataclass, field
from datetime import datetime, timezone
import json
from typing import Any, Callable, Dict, Generic, List, Optional, Tuple, TypeVar
from urllib.parse import quote, urlencode

from bitbucketfs.errors import ParseError, ValidationError

T = TypeVar("T")
E = TypeVar("E")

# Entry types as reported by the browse endpoint
TYPE_FILE = "FILE"
TYPE_DIRECTORY = "DIRECTORY"

# Marker for fields without a default value
_MISSING = object()


#
# Results
#


@dataclass(frozen=True)
class PageCursor:
    """Position of a page within a paginated listing."""

    start: int = 0
    next_page_start: int = 0
    is_last_page: bool = True


@dataclass(frozen=True)
class Page(Generic[E]):
    """A single page of a paginated listing."""

    values: List[E] = field(default_factory=list)
    cursor: PageCursor = field(default_factory=PageCursor)


@dataclass(frozen=True)
class RemoteEntry:
    """File or directory as listed in a directory page."""

    name: str
    type: str
    size: int = 0

    def is_dir(self) -> bool:
        """Return whether the entry is a directory."""
        return self.type == TYPE_DIRECTORY


@dataclass(frozen=True)
class Tag:
    """Tag in the repository and the commit it points to."""

    name: str
    commit_id: str
    id: str = ""
    type: str = ""


@dataclass(frozen=True)
class Person:
    """Author or committer of a commit."""

    name: str
    email: str


@dataclass(frozen=True)
class Commit:
    """Commit metadata."""

    id: str
    display_id: str
    message: str
    author: Person
    author_timestamp: Optional[datetime]
    committer: Person
    committer_timestamp: Optional[datetime]
    parents: Tuple[str, ...] = ()


#
# Commands
#


class Command(ABC, Generic[T]):
    """
    Base class for remote operations.

    Subclasses are frozen dataclasses that define project_key and repo_slug fields.
    """

    project_key: str
    repo_slug: str

    # Fields that must be non-empty for the command to be valid
    required_fields: Tuple[str, ...] = ("project_key", "repo_slug")

    def validate(self) -> None:
        """Check that all mandatory fields are set."""
        for name in self.required_fields:
            if not getattr(self, name):
                raise ValidationError(f"{name} is missing")

    def build_url(self, base_url: str) -> str:
        """
        Build the request URL from the base API URL and the fields of the command.

        The result is deterministic so that it can be used as a cache key. Query
        parameters with empty or zero values are left out completely.
        """
        segments = ["projects", self.project_key, "repos", self.repo_slug]
        segments += self._path_segments()

        url = base_url.rstrip("/") + "/" + "/".join(quote(s) for s in segments if s)

        params = [(name, str(v)) for name, v in self._query_params() if v]

        if params:
            url += "?" + urlencode(params)

        return url

    @abstractmethod
    def parse_response(self, body: bytes) -> T:
        """Decode a response body into the result of the command."""

    @abstractmethod
    def _path_segments(self) -> List[str]:
        """Return the URL path segments that follow the repository coordinates."""

    def _query_params(self) -> List[Tuple[str, Any]]:
        """Return the candidate query parameters in a fixed order."""
        return []

    def __str__(self) -> str:
        return self.__class__.__name__


class PagedCommand(Command[Page[E]]):
    """Base class for commands that return one page of a paginated listing."""

    start: int
    limit: int

    def at_start(self, start: int) -> PagedCommand[E]:
        """Return a copy of the command that requests the page at the given offset."""
        return dataclasses.replace(self, start=start)  # type: ignore


@dataclass(frozen=True)
class FetchFileContent(Command[bytes]):
    """
    Fetch the full contents of a file.

    The raw endpoint may answer with either the plain file contents or a JSON document
    with the file split up into lines. The latter is recognized by its "lines" array
    and joined back together with a newline after every line. Anything else is returned
    as is.
    """

    project_key: str
    repo_slug: str
    path: str
    at: str = ""

    required_fields = ("project_key", "repo_slug", "path")

    def _path_segments(self) -> List[str]:
        return ["raw", self.path]

    def _query_params(self) -> List[Tuple[str, Any]]:
        return [("at", self.at)]

    def parse_response(self, body: bytes) -> bytes:
        lines = _parse_lines(body)

        if lines is None:
            return body

        return "".join(line + "\n" for line in lines).encode()


@dataclass(frozen=True)
class OpenRawFile(Command[bytes]):
    """Stream the raw contents of a file. Used with Client.open()."""

    project_key: str
    repo_slug: str
    path: str
    at: str = ""

    required_fields = ("project_key", "repo_slug", "path")

    def _path_segments(self) -> List[str]:
        return ["raw", self.path]

    def _query_params(self) -> List[Tuple[str, Any]]:
        return [("at", self.at)]

    def parse_response(self, body: bytes) -> bytes:
        return body


@dataclass(frozen=True)
class ListDirectoryEntries(PagedCommand[RemoteEntry]):
    """List one page of the children of a directory. An empty path is the root."""

    project_key: str
    repo_slug: str
    path: str = ""
    at: str = ""
    start: int = 0
    limit: int = 0

    def _path_segments(self) -> List[str]:
        return ["browse", self.path]

    def _query_params(self) -> List[Tuple[str, Any]]:
        return [("at", self.at), ("start", self.start), ("limit", self.limit)]

    def parse_response(self, body: bytes) -> Page[RemoteEntry]:
        doc = _load_object(body)
        children = _get(doc, "children", dict)

        return _parse_page(children, _parse_entry)


@dataclass(frozen=True)
class ListTags(PagedCommand[Tag]):
    """List one page of the tags in the repository."""

    project_key: str
    repo_slug: str
    order_by: str = ""
    filter_text: str = ""
    start: int = 0
    limit: int = 0

    def _path_segments(self) -> List[str]:
        return ["tags"]

    def _query_params(self) -> List[Tuple[str, Any]]:
        return [
            ("orderBy", self.order_by),
            ("filterText", self.filter_text),
            ("start", self.start),
            ("limit", self.limit),
        ]

    def parse_response(self, body: bytes) -> Page[Tag]:
        return _parse_page(_load_object(body), _parse_tag)


@dataclass(frozen=True)
class ListCommits(PagedCommand[Commit]):
    """
    List one page of commits, or retrieve a single commit.

    If a commit id is set, the response is that single commit and the result is a page
    containing just that commit.
    """

    project_key: str
    repo_slug: str
    commit_id: str = ""
    path: str = ""
    until: str = ""
    order_by: str = ""
    start: int = 0
    limit: int = 0

    def _path_segments(self) -> List[str]:
        return ["commits", self.commit_id]

    def _query_params(self) -> List[Tuple[str, Any]]:
        return [
            ("path", self.path),
            ("until", self.until),
            ("orderBy", self.order_by),
            ("start", self.start),
            ("limit", self.limit),
        ]

    def parse_response(self, body: bytes) -> Page[Commit]:
        doc = _load_object(body)

        if self.commit_id:
            return Page(values=[_parse_commit(doc)])

        return _parse_page(doc, _parse_commit)


#
# Response parsing helpers
#


def _load_object(body: bytes) -> Dict[str, Any]:
    """Decode a JSON object from a response body."""
    try:
        doc = json.loads(body)
    except ValueError as e:
        raise ParseError(f"invalid JSON: {e}")

    if not isinstance(doc, dict):
        raise ParseError(f"expected JSON object, got {type(doc).__name__}")

    return doc


def _get(doc: Dict[str, Any], key: str, typ: type, default: Any = _MISSING) -> Any:
    """
    Retrieve a field of a JSON object and check its type.

    Missing and null fields both resolve to the default, if there is one.
    """
    value = doc.get(key)

    if value is None:
        if default is _MISSING:
            raise ParseError(f"missing field '{key}'")

        return default

    # bool is a subclass of int, so it is excluded explicitly for integer fields
    if not isinstance(value, typ) or (typ is int and isinstance(value, bool)):
        raise ParseError(f"field '{key}' should be {typ.__name__}")

    return value


def _parse_lines(body: bytes) -> Optional[List[str]]:
    """Extract the lines of a line-array file response, or None for other bodies."""
    try:
        doc = json.loads(body)
    except ValueError:
        return None

    if not isinstance(doc, dict) or not isinstance(doc.get("lines"), list):
        return None

    lines = []

    # A file that merely happens to contain a "lines" key is returned as is
    for line in doc["lines"]:
        if not isinstance(line, dict):
            return None

        text = line.get("text", "")

        if text is None:
            text = ""
        elif not isinstance(text, str):
            return None

        lines.append(text)

    return lines


def _parse_page(
    doc: Dict[str, Any], parse_value: Callable[[Dict[str, Any]], E]
) -> Page[E]:
    """Parse the values and pagination fields shared by all paginated responses."""
    values = _get(doc, "values", list, [])

    for value in values:
        if not isinstance(value, dict):
            raise ParseError("listed value should be an object")

    cursor = PageCursor(
        start=_get(doc, "start", int, 0),
        next_page_start=_get(doc, "nextPageStart", int, 0),
        is_last_page=_get(doc, "isLastPage", bool, True),
    )

    return Page(values=[parse_value(v) for v in values], cursor=cursor)


def _parse_entry(value: Dict[str, Any]) -> RemoteEntry:
    path = _get(value, "path", dict)
    components = _get(path, "components", list, [])

    if components:
        name = components[0]
    else:
        name = _get(path, "name", str)

    if not isinstance(name, str) or not name:
        raise ParseError("entry without a name")

    return RemoteEntry(
        name=name,
        type=_get(value, "type", str),
        size=_get(value, "size", int, 0),
    )


def _parse_tag(value: Dict[str, Any]) -> Tag:
    return Tag(
        name=_get(value, "displayId", str),
        commit_id=_get(value, "latestCommit", str, ""),
        id=_get(value, "id", str, ""),
        type=_get(value, "type", str, ""),
    )


def _parse_person(value: Dict[str, Any], key: str) -> Person:
    person = _get(value, key, dict, {})

    return Person(
        name=_get(person, "name", str, ""),
        email=_get(person, "emailAddress", str, ""),
    )


def _parse_timestamp(value: Dict[str, Any], key: str) -> Optional[datetime]:
    """Convert a timestamp in milliseconds since the epoch into a UTC datetime."""
    millis = _get(value, key, int, 0)

    if not millis:
        return None

    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)


def _parse_commit(value: Dict[str, Any]) -> Commit:
    parents = _get(value, "parents", list, [])

    return Commit(
        id=_get(value, "id", str),
        display_id=_get(value, "displayId", str, ""),
        message=_get(value, "message", str, ""),
        author=_parse_person(value, "author"),
        author_timestamp=_parse_timestamp(value, "authorTimestamp"),
        committer=_parse_person(value, "committer"),
        committer_timestamp=_parse_timestamp(value, "committerTimestamp"),
        parents=tuple(p["id"] for p in parents if isinstance(p, dict) and "id" in p),
    )
