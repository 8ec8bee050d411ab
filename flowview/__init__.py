"""Account inventory queries for the Flow ledger."""

__version__ = "0.1.0"
