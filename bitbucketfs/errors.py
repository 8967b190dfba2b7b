"""
Exceptions raised by the client and the file system.

Every exception derives from BitbucketError and additionally from the builtin exception
that best describes it, so callers can catch FileNotFoundError or ValueError without
knowing about this module.

Errors are never translated on their way up. Layers that know more about the operation
in progress (which command, which path) prepend that knowledge to the error's context
using error_context() and re-raise the very same exception object.
"""

from contextlib import contextmanager
from typing import Iterator, List


class BitbucketError(Exception):
    """Base class for all bitbucketfs errors."""

    def __init__(self, message: str) -> None:
        """Instantiate with a message, context can be added later."""
        super().__init__(message)

        self.message = message
        self.context: List[str] = []

    def __str__(self) -> str:
        return ": ".join(self.context + [self.message])


class ValidationError(BitbucketError, ValueError):
    """A command is missing a mandatory field. Raised before any network call."""


class TransportError(BitbucketError, IOError):
    """The request could not be completed due to a network or connection failure."""


class CancelledError(TransportError):
    """The request was aborted because its cancellation token was set."""


class StatusError(TransportError):
    """The server responded with a non-2xx status code."""

    def __init__(self, status_code: int, reason: str) -> None:
        """Instantiate with the HTTP status code and its status text."""
        super().__init__(f"bad status: {status_code} {reason}".rstrip())

        self.status_code = status_code
        self.reason = reason


class ParseError(BitbucketError, ValueError):
    """A response body does not have the shape expected by its command."""


class NotFoundError(BitbucketError, FileNotFoundError):
    """A path does not resolve to any entry in the repository."""


class InvalidPathError(BitbucketError, ValueError):
    """A path is malformed or does not refer to the expected kind of entry."""


@contextmanager
def error_context(context: str) -> Iterator[None]:
    """
    Prepend context to any BitbucketError raised within the block.

    Errors that are stored and raised again pass through the same block more than
    once, but only receive its context the first time.
    """
    try:
        yield
    except BitbucketError as e:
        if not e.context or e.context[0] != context:
            e.context.insert(0, context)
        raise
