"""Flow ledger access: script registry, JSON-Cadence codec and client."""
from .cadence import ADDRESS, BOOL, STRING, UINT64, CadenceType, TypedArg, array_of
from .client import FlowClient
from .scripts import QuerySpec, ScriptRegistry

__all__ = [
    "ADDRESS",
    "BOOL",
    "STRING",
    "UINT64",
    "CadenceType",
    "FlowClient",
    "QuerySpec",
    "ScriptRegistry",
    "TypedArg",
    "array_of",
]
