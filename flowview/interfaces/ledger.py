"""Ledger client protocol — the remote query seam."""
from typing import Any, Protocol, Sequence

from ..chains.flow.cadence import TypedArg
from ..chains.flow.scripts import QuerySpec


class LedgerClient(Protocol):
    """Abstract interface for running parameterized ledger queries."""

    async def execute(self, spec: QuerySpec, args: Sequence[TypedArg] = ()) -> Any: ...
