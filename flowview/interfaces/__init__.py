"""Protocol interfaces for flowview."""
from .ledger import LedgerClient

__all__ = ["LedgerClient"]
