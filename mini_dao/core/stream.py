"""Lazy row stream over an open driver cursor."""

from __future__ import annotations

from typing import Any, Callable, Generic, Iterator, Optional, TypeVar

T = TypeVar("T")
U = TypeVar("U")


class RowStream(Generic[T]):
    """Forward-only iterator that fetches one row per step.

    The stream owns a cursor until it is exhausted, closed, or left through a
    `with` block. It cannot be restarted.

    Args:
        fetch: Returns the next item, or `None` at end of results.
        release: Releases the underlying cursor. Called at most once.
    """

    def __init__(
        self,
        fetch: Callable[[], Optional[T]],
        release: Callable[[], None],
    ):
        self._fetch = fetch
        self._release: Optional[Callable[[], None]] = release

    @property
    def closed(self) -> bool:
        return self._release is None

    def __iter__(self) -> Iterator[T]:
        return self

    def __next__(self) -> T:
        if self._release is None:
            raise StopIteration
        try:
            item = self._fetch()
        except BaseException:
            self.close()
            raise
        if item is None:
            self.close()
            raise StopIteration
        return item

    def close(self) -> None:
        """Release the cursor; safe to call more than once."""

        release = self._release
        self._release = None
        if release is not None:
            release()

    def map(self, fn: Callable[[T], U]) -> RowStream[U]:
        """Return a stream yielding `fn(row)` over the same cursor."""

        def fetch() -> Optional[U]:
            item = self._fetch()
            return None if item is None else fn(item)

        stream: RowStream[U] = RowStream(fetch, self.close)
        return stream

    def __enter__(self) -> RowStream[T]:
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()

    def __del__(self) -> None:
        if self._release is not None:
            self.close()
