"""Module that exposes a streamed HTTP response body as a read-only file object."""

import io
import threading
from typing import Iterator, Optional

import requests

from bitbucketfs.errors import BitbucketError, CancelledError, TransportError

# Number of bytes requested from the connection at a time
CHUNK_SIZE = 64 * 1024


def iter_chunks(
    response: requests.Response, cancel: Optional[threading.Event] = None
) -> Iterator[bytes]:
    """
    Iterate over the body of a streamed response in chunks.

    The cancellation token is checked before every chunk, so a cancelled transfer stops
    within one chunk. Connection failures halfway through the body are raised as
    TransportError.
    """
    chunks = response.iter_content(chunk_size=CHUNK_SIZE)

    while True:
        check_cancelled(cancel)

        try:
            chunk = next(chunks)
        except StopIteration:
            return
        except requests.RequestException as e:
            raise TransportError(f"failed to read response body: {e}") from e

        yield chunk


def check_cancelled(cancel: Optional[threading.Event]) -> None:
    """Raise CancelledError if the cancellation token has been set."""
    if cancel is not None and cancel.is_set():
        raise CancelledError("request cancelled")


class RawContentStream(io.RawIOBase):
    """
    Unbuffered file object that reads directly from a streamed HTTP response.

    The response is released when the stream is closed, which happens at most once no
    matter how many times close() is called.

    If reading the body fails halfway through, that error is raised again by every
    following read so that a truncated body is never mistaken for the end of the file.
    """

    def __init__(
        self, response: requests.Response, cancel: Optional[threading.Event] = None
    ) -> None:
        """Wrap an open response whose status has already been checked."""
        super().__init__()

        self._response = response
        self._chunks = iter_chunks(response, cancel)
        self._pending = b""
        self._error: Optional[BitbucketError] = None

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:  # type: ignore
        """Read up to len(buffer) bytes into the buffer, returning 0 at end of file."""
        if self.closed:
            raise ValueError("I/O operation on closed file")

        if self._error is not None:
            raise self._error

        while not self._pending:
            try:
                self._pending = next(self._chunks)
            except StopIteration:
                return 0
            except BitbucketError as e:
                self._error = e
                raise

        n = min(len(buffer), len(self._pending))

        buffer[:n] = self._pending[:n]
        self._pending = self._pending[n:]

        return n

    def close(self) -> None:
        """Release the underlying response."""
        if self.closed:
            return

        try:
            self._response.close()
        finally:
            super().close()
