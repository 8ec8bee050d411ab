"""JSON-Cadence codec for script arguments and results."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from ...errors import InvalidArgument, QueryErrorKind, RemoteQueryError
from ...models import normalize_address

UINT64_MAX = 2**64 - 1

_INTEGER_TYPES = {
    "Int", "Int8", "Int16", "Int32", "Int64", "Int128", "Int256",
    "UInt", "UInt8", "UInt16", "UInt32", "UInt64", "UInt128", "UInt256",
    "Word8", "Word16", "Word32", "Word64", "Word128", "Word256",
}
_FIXED_POINT_TYPES = {"Fix64", "UFix64"}
_COMPOSITE_TYPES = {"Struct", "Resource", "Event", "Contract", "Enum"}


@dataclass(frozen=True)
class CadenceType:
    """Ledger type tag for a script argument."""

    name: str
    element: CadenceType | None = None

    def __str__(self) -> str:
        if self.name == "Array" and self.element is not None:
            return f"[{self.element}]"
        return self.name


ADDRESS = CadenceType("Address")
STRING = CadenceType("String")
UINT64 = CadenceType("UInt64")
BOOL = CadenceType("Bool")


def array_of(element: CadenceType) -> CadenceType:
    return CadenceType("Array", element)


@dataclass(frozen=True)
class TypedArg:
    value: Any
    type: CadenceType


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def _encode(value: Any, tag: CadenceType) -> dict[str, Any]:
    if tag.name == "Address":
        return {"type": "Address", "value": normalize_address(value)}
    if tag.name == "String":
        if not isinstance(value, str):
            raise InvalidArgument(f"Expected String, got {type(value).__name__}")
        return {"type": "String", "value": value}
    if tag.name == "Bool":
        if not isinstance(value, bool):
            raise InvalidArgument(f"Expected Bool, got {type(value).__name__}")
        return {"type": "Bool", "value": value}
    if tag.name == "UInt64":
        if isinstance(value, bool):
            raise InvalidArgument("Expected UInt64, got bool")
        try:
            number = int(value)
        except (TypeError, ValueError) as e:
            raise InvalidArgument(f"Expected UInt64, got {value!r}") from e
        if not 0 <= number <= UINT64_MAX:
            raise InvalidArgument(f"UInt64 out of range: {number}")
        return {"type": "UInt64", "value": str(number)}
    if tag.name == "Array" and tag.element is not None:
        if isinstance(value, (str, bytes)) or not hasattr(value, "__iter__"):
            raise InvalidArgument(f"Expected {tag}, got {type(value).__name__}")
        return {"type": "Array", "value": [_encode(v, tag.element) for v in value]}
    raise InvalidArgument(f"Unsupported argument type: {tag}")


def encode_argument(arg: TypedArg) -> dict[str, Any]:
    """Encode ``arg`` as a JSON-Cadence value using exactly its declared tag."""
    return _encode(arg.value, arg.type)


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


def _decode_error(message: str) -> RemoteQueryError:
    return RemoteQueryError(QueryErrorKind.DECODE, message)


def type_id(static: Any) -> str:
    """Render a JSON-Cadence static type as its type identifier string."""
    if isinstance(static, str):
        return static
    if not isinstance(static, dict):
        raise _decode_error(f"Malformed static type: {static!r}")
    if static.get("typeID"):
        return static["typeID"]

    kind = static.get("kind", "")
    if kind == "Optional":
        return f"{type_id(static['type'])}?"
    if kind == "VariableSizedArray":
        return f"[{type_id(static['type'])}]"
    if kind == "ConstantSizedArray":
        return f"[{type_id(static['type'])}; {static.get('size')}]"
    if kind == "Dictionary":
        return f"{{{type_id(static['key'])}: {type_id(static['value'])}}}"
    if kind == "Reference":
        auth = "auth " if static.get("authorized") is True else ""
        return f"{auth}&{type_id(static['type'])}"
    if kind == "Capability":
        inner = static.get("type")
        return f"Capability<{type_id(inner)}>" if inner else "Capability"
    if kind in ("Restriction", "Intersection"):
        members = static.get("types") or static.get("restrictions") or []
        base = static.get("type")
        prefix = type_id(base) if base else ""
        return f"{prefix}{{{', '.join(type_id(m) for m in members)}}}"
    if kind:
        return kind
    raise _decode_error(f"Malformed static type: {static!r}")


def decode_value(node: Any) -> Any:
    """Convert a JSON-Cadence value into plain Python data."""
    if not isinstance(node, dict) or "type" not in node:
        raise _decode_error(f"Not a JSON-Cadence value: {node!r}")

    kind = node["type"]
    value = node.get("value")

    try:
        if kind == "Optional":
            return None if value is None else decode_value(value)
        if kind == "Void":
            return None
        if kind == "Bool":
            return bool(value)
        if kind in ("String", "Character"):
            return str(value)
        if kind == "Address":
            return normalize_address(value)
        if kind in _INTEGER_TYPES:
            return int(value)
        if kind in _FIXED_POINT_TYPES:
            return Decimal(value)
        if kind == "Array":
            return [decode_value(item) for item in value]
        if kind == "Dictionary":
            return {
                decode_value(pair["key"]): decode_value(pair["value"])
                for pair in value
            }
        if kind in _COMPOSITE_TYPES:
            return {
                f["name"]: decode_value(f["value"]) for f in value.get("fields", [])
            }
        if kind == "Path":
            return f"/{value['domain']}/{value['identifier']}"
        if kind == "Type":
            return type_id(value["staticType"]) if value else None
        if kind == "Capability":
            return {
                "path": decode_value(value["path"]) if value.get("path") else None,
                "address": normalize_address(value["address"]),
                "borrowType": type_id(value.get("borrowType", "")),
            }
    except RemoteQueryError:
        raise
    except (KeyError, TypeError, ValueError, AttributeError, InvalidOperation) as e:
        raise _decode_error(f"Malformed {kind} value: {e}") from e

    raise _decode_error(f"Unsupported JSON-Cadence type: {kind}")
