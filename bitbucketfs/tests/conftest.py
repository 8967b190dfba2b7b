"""Module that provides a fake Bitbucket Server and adds a flag to run live tests."""

import json
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest

from bitbucketfs.client import Client, ListDirectoryEntries, ResponseCache
from bitbucketfs.config import RepositoryConfig
from bitbucketfs.filesystem import BitbucketFileSystem

HOST = "bitbucket.example.com"
BASE_URL = f"https://{HOST}/rest/api/latest"
PROJECT = "PROJ"
REPO = "repo"
PAGE_SIZE = 3


class FakeResponse:
    """Stand-in for a streamed requests.Response."""

    def __init__(
        self,
        body: Any = b"",
        status_code: int = 200,
        reason: str = "OK",
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        if not isinstance(body, bytes):
            body = json.dumps(body).encode()

        self.body = body
        self.status_code = status_code
        self.reason = reason
        self.headers = headers if headers is not None else {
            "Content-Length": str(len(body))
        }
        self.close_count = 0

    def iter_content(self, chunk_size: int = 1):
        for i in range(0, len(self.body), chunk_size):
            yield self.body[i : i + chunk_size]

    def close(self) -> None:
        self.close_count += 1


class FakeServer:
    """
    Stand-in for a requests.Session that serves canned responses by URL.

    Unknown URLs result in a 404 response. All requests are recorded.
    """

    base_url = BASE_URL

    def __init__(self) -> None:
        self.routes: Dict[str, Any] = {}
        self.requests: List[str] = []
        self.headers: List[Dict[str, str]] = []
        self.responses: List[FakeResponse] = []

    def add(self, url: str, body: Any, **kwargs: Any) -> None:
        """Serve the given body (bytes, JSON document or prepared response) for a URL."""
        self.routes[url] = (body, kwargs)

    def add_directory(
        self,
        path: str,
        entries: Sequence[Tuple[str, str, int]],
        page_size: int = PAGE_SIZE,
        at: str = "",
    ) -> None:
        """Serve the listing of a directory in pages of page_size entries."""
        starts = list(range(0, len(entries), page_size)) or [0]

        for start in starts:
            end = start + page_size
            page = entries[start:end]

            command = ListDirectoryEntries(
                PROJECT, REPO, path=path, at=at, start=start, limit=page_size
            )

            body = browse_page(page, start, end, len(entries))
            self.add(command.build_url(BASE_URL), body)

    def get(self, url: str, headers=None, stream=False, timeout=None) -> FakeResponse:
        self.requests.append(url)
        self.headers.append(headers)

        if url in self.routes:
            body, kwargs = self.routes[url]
            # Prepared responses (e.g. mocks that fail halfway) are served as they are
            if hasattr(body, "iter_content"):
                response = body
            else:
                response = FakeResponse(body, **kwargs)
        else:
            response = FakeResponse(b"", 404, "Not Found")

        self.responses.append(response)

        return response

    def close(self) -> None:
        pass


def browse_page(
    entries: Sequence[Tuple[str, str, int]], start: int, end: int, total: int
) -> Dict:
    """Build the response body of a browse request."""
    values = []

    for name, typ, size in entries:
        value: Dict[str, Any] = {
            "path": {"components": [name], "name": name},
            "type": typ,
        }

        if typ == "FILE":
            value["size"] = size

        values.append(value)

    children: Dict[str, Any] = {
        "values": values,
        "start": start,
        "size": len(values),
        "limit": len(values),
        "isLastPage": end >= total,
    }

    if end < total:
        children["nextPageStart"] = end

    return {"path": {"components": []}, "children": children}


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def client(server) -> Client:
    return Client(BASE_URL, "secret", cache=ResponseCache(), session=server)


@pytest.fixture
def repository_config() -> RepositoryConfig:
    return RepositoryConfig(
        host=HOST, project_key=PROJECT, repository_slug=REPO, page_size=PAGE_SIZE
    )


@pytest.fixture
def fs(repository_config, client) -> BitbucketFileSystem:
    return BitbucketFileSystem(repository_config, client=client)


def pytest_addoption(parser):
    parser.addoption(
        "--live",
        action="store_true",
        default=False,
        help="Run tests against the Bitbucket Server in $BBFS_LIVE_HOST",
    )


def pytest_configure(config):
    config.addinivalue_line("markers", "live: mark test as requiring a live server")


def pytest_collection_modifyitems(config, items):
    if not config.getoption("--live"):
        skip_live = pytest.mark.skip(reason="only runs with --live option")

        for item in items:
            if "live" in item.keywords:
                item.add_marker(skip_live)
