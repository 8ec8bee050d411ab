"""Error taxonomy for inventory queries."""
from __future__ import annotations

from contextlib import contextmanager
from decimal import InvalidOperation
from enum import Enum
from typing import Iterator


class InventoryError(Exception):
    """Base class for every failure raised by flowview."""


class InvalidArgument(InventoryError, ValueError):
    """Malformed input, rejected before any network call."""


class QueryErrorKind(str, Enum):
    TRANSPORT = "transport"
    EXECUTION = "execution"
    DECODE = "decode"


class RemoteQueryError(InventoryError):
    """A single remote query failed.

    ``kind`` tells whether the request never completed (transport), the ledger
    rejected or aborted the script (execution), or the response could not be
    understood (decode). ``message`` is passed through from the remote side
    untouched so callers can inspect it.
    """

    def __init__(
        self, kind: QueryErrorKind, message: str, status: int | None = None
    ) -> None:
        super().__init__(f"{kind.value} error: {message}")
        self.kind = kind
        self.message = message
        self.status = status


class AggregateFailure(InventoryError):
    """First failure among concurrently dispatched query groups."""

    def __init__(self, error: RemoteQueryError, group_index: int) -> None:
        super().__init__(f"Query group {group_index} failed: {error}")
        self.error = error
        self.group_index = group_index

    @property
    def kind(self) -> QueryErrorKind:
        return self.error.kind


@contextmanager
def decoding(what: str) -> Iterator[None]:
    """Turn malformed response content into a decode ``RemoteQueryError``."""
    try:
        yield
    except InventoryError:
        raise
    except (KeyError, TypeError, ValueError, AttributeError, InvalidOperation) as e:
        raise RemoteQueryError(
            QueryErrorKind.DECODE, f"Malformed {what}: {e!r}"
        ) from e
