"""Module that implements the client executing commands against the REST API."""

import logging
import threading
import time
from typing import Dict, Optional, Union

import requests

from bitbucketfs.client.cache import ResponseCache
from bitbucketfs.client.commands import Command, E, PagedCommand, T
from bitbucketfs.client.iterator import PageIterator
from bitbucketfs.client.stream import check_cancelled, iter_chunks, RawContentStream
from bitbucketfs.constants import DEFAULT_MAX_BODY_SIZE, DEFAULT_TIMEOUT
from bitbucketfs.errors import (
    CancelledError,
    error_context,
    StatusError,
    TransportError,
)
from bitbucketfs.logger import log, summarize_url


class SecretString:
    """
    Container for a credential that never reveals its value when printed.

    The textual representation is a mask of fixed length, so not even the length of the
    secret leaks into logs. Use secret() to retrieve the actual value.
    """

    MASK = "********"

    def __init__(self, value: str = "") -> None:
        """Wrap a secret value."""
        self._value = value

    def secret(self) -> str:
        """Return the secret in cleartext."""
        return self._value

    def __str__(self) -> str:
        return self.MASK

    def __repr__(self) -> str:
        return f"SecretString('{self.MASK}')"

    def __bool__(self) -> bool:
        return bool(self._value)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, SecretString) and other._value == self._value

    def __hash__(self) -> int:
        return hash(self._value)


class Client:
    """
    Client that runs commands against the Bitbucket Server REST API.

    Every command goes through the same steps, each of which may fail and end the call:

    1. The command validates its own fields.
    2. The command builds the full request URL from the base URL.
    3. The response cache is checked for a body stored under that exact URL. On a hit,
    the network is skipped entirely.
    4. The request is sent with the bearer token and must return a 2xx status. The
    body is read and stored in the cache, unless it is larger than the maximum body
    size, in which case it is handed to the parser without being cached.
    5. The command parses the body into its result.

    Failed and cancelled requests never leave anything in the cache. Errors are raised
    with the command and URL added to their context and are never retried.

    Raw file contents can alternatively be streamed with open(), which bypasses the
    cache completely.

    The client owns its cache, which is created along with the client unless one is
    passed in explicitly (e.g. to share it between clients).
    """

    def __init__(
        self,
        base_url: str,
        access_key: Union[SecretString, str],
        cache: Optional[ResponseCache] = None,
        session: Optional[requests.Session] = None,
        max_body_size: int = DEFAULT_MAX_BODY_SIZE,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Instantiate a client for the API at the given base URL."""
        if not isinstance(access_key, SecretString):
            access_key = SecretString(access_key)

        self.base_url = base_url
        self.access_key = access_key
        self.max_body_size = max_body_size
        self.timeout = timeout

        self.cache = cache if cache is not None else ResponseCache()

        self._session = session if session is not None else requests.Session()

    def __repr__(self) -> str:
        return f"Client(base_url={self.base_url!r}, access_key={self.access_key!r})"

    def execute(
        self, command: Command[T], cancel: Optional[threading.Event] = None
    ) -> T:
        """Run a command and return its parsed result."""
        with error_context(str(command)):
            command.validate()

        url = command.build_url(self.base_url)

        with error_context(f"{command} {url}"):
            body, found = self.cache.get(url)

            if found:
                log.debug(f"cache hit for {summarize_url(url)}")
            else:
                body = self._fetch(command, url, cancel)

            assert body is not None

            return command.parse_response(body)

    def open(
        self, command: Command, cancel: Optional[threading.Event] = None
    ) -> RawContentStream:
        """
        Send the request for a command and return its response body as a stream.

        The body is neither cached nor parsed. The caller is responsible for closing
        the stream.
        """
        with error_context(str(command)):
            command.validate()

        url = command.build_url(self.base_url)

        with error_context(f"{command} {url}"):
            response = self._request(command, url, cancel)

        return RawContentStream(response, cancel)

    def iterate(
        self, command: PagedCommand[E], cancel: Optional[threading.Event] = None
    ) -> PageIterator[E]:
        """Fetch the first page of a listing and return an iterator over all values."""
        first_page = self.execute(command, cancel)

        return PageIterator(self, command, first_page, cancel)

    def clear_cache(self) -> None:
        """Forget all cached responses."""
        self.cache.clear()

    def close(self) -> None:
        """Close the connections of the underlying HTTP session."""
        self._session.close()

    def _fetch(
        self, command: Command, url: str, cancel: Optional[threading.Event]
    ) -> bytes:
        """Retrieve the body for a request and cache it if it's small enough."""
        response = self._request(command, url, cancel)

        try:
            declared_size = self._declared_size(response)
            body = b"".join(iter_chunks(response, cancel))
        finally:
            response.close()

        if max(declared_size, len(body)) <= self.max_body_size:
            self.cache.set(url, body)
        else:
            log.debug(f"not caching {len(body)} byte response for {summarize_url(url)}")

        return body

    def _request(
        self, command: Command, url: str, cancel: Optional[threading.Event]
    ) -> requests.Response:
        """Send a GET request and return the response if it has a 2xx status."""
        check_cancelled(cancel)

        t_call = time.time()

        try:
            response = self._session.get(
                url, headers=self._headers(), stream=True, timeout=self.timeout
            )
        except requests.RequestException as e:
            raise TransportError(f"request failed: {e}") from e

        t_return = time.time()

        if log.isEnabledFor(logging.DEBUG):
            t_millis = round((t_return - t_call) * 1000)
            log.debug(f"http::{command} {summarize_url(url)} - {t_millis} ms")

        if not 200 <= response.status_code < 300:
            response.close()
            raise StatusError(response.status_code, response.reason or "")

        # The request itself can't be interrupted, but its body doesn't need to be read
        try:
            check_cancelled(cancel)
        except CancelledError:
            response.close()
            raise

        return response

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.access_key.secret()}",
            "Accept": "application/json",
        }

    @staticmethod
    def _declared_size(response: requests.Response) -> int:
        """Return the Content-Length of a response, or 0 if it's absent or invalid."""
        try:
            return int(response.headers.get("Content-Length", 0))
        except ValueError:
            return 0
