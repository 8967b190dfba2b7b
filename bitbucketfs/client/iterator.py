"""Module that implements forward-only iteration over paginated listings."""

from __future__ import annotations

import threading
from typing import Generic, Optional, TYPE_CHECKING

from bitbucketfs.client.commands import E, Page, PagedCommand
from bitbucketfs.errors import BitbucketError, ParseError

if TYPE_CHECKING:
    from bitbucketfs.client.client import Client


class PageIterator(Generic[E]):
    """
    Iterator over all values of a paginated listing, fetching pages as needed.

    The iterator starts out with the first page, which has already been fetched, and the
    command that produced it. Once all values of the current page have been returned,
    the next page is requested with a copy of that command starting at the offset the
    previous page pointed to. The command itself is never modified.

    Iteration stops without error after the last value of the last page. If fetching a
    page fails then that error is raised once and stored in `error`, after which the
    iterator behaves as if it was exhausted. Nothing is retried.

    Like any iterator it can only be consumed once. Create a new one with
    Client.iterate() to start over.
    """

    def __init__(
        self,
        client: Client,
        command: PagedCommand[E],
        first_page: Page[E],
        cancel: Optional[threading.Event] = None,
    ) -> None:
        """Instantiate with the first page of the listing and the command for it."""
        self._client = client
        self._command = command
        self._page = first_page
        self._index = 0
        self._cancel = cancel

        self._exhausted = False
        self._error: Optional[BitbucketError] = None

    @property
    def error(self) -> Optional[BitbucketError]:
        """Return the error that ended iteration, if any."""
        return self._error

    @property
    def exhausted(self) -> bool:
        """Return whether all values of the last page have been returned."""
        return self._exhausted

    def __iter__(self) -> PageIterator[E]:
        return self

    def __next__(self) -> E:
        if self._exhausted or self._error is not None:
            raise StopIteration

        # Loop to skip over pages that are empty, but not the last
        while self._index >= len(self._page.values):
            if self._page.cursor.is_last_page:
                self._exhausted = True
                raise StopIteration

            self._load_next_page()

        value = self._page.values[self._index]
        self._index += 1

        return value

    def _load_next_page(self) -> None:
        """Replace the current page with the one following it."""
        cursor = self._page.cursor

        try:
            if cursor.next_page_start <= cursor.start:
                raise ParseError(
                    f"page at {cursor.start} does not advance the listing "
                    f"(next page at {cursor.next_page_start})"
                )

            command = self._command.at_start(cursor.next_page_start)
            self._page = self._client.execute(command, self._cancel)
        except BitbucketError as e:
            self._error = e
            raise

        self._index = 0
