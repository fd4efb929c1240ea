"""Constructor-argument validation and encoding for contract-deployer."""

import json
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Sequence

from eth_abi import encode, is_encodable
from eth_abi.exceptions import ParseError
from eth_abi.grammar import TupleType, normalize, parse

from .exceptions import ArgumentMismatchError
from .types import CompiledContract

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_TRUE_STRINGS = {"true", "1", "yes"}
_FALSE_STRINGS = {"false", "0", "no"}


def constructor_inputs(abi: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Get the constructor's input descriptors from an ABI.

    Args:
        abi: Contract interface descriptor

    Returns:
        List of input entries (each with "name" and "type"); empty if the
        contract declares no constructor
    """
    for item in abi:
        if item.get("type") == "constructor":
            return list(item.get("inputs", []))
    return []


def abi_type_string(entry: Dict[str, Any]) -> str:
    """
    Render an ABI input entry as a canonical type string.

    Tuple entries are expanded from their "components", e.g.
    ``{"type": "tuple[]", ...}`` becomes ``"(uint256,address)[]"``.
    """
    type_str = entry["type"]
    if type_str.startswith("tuple"):
        inner = ",".join(abi_type_string(c) for c in entry.get("components", []))
        type_str = f"({inner}){type_str[len('tuple'):]}"
    return normalize(type_str)


def split_cli_args(text: str) -> List[str]:
    """
    Split a comma-separated argument list, keeping bracketed values intact.

    ``"3,14,50"`` gives ``["3", "14", "50"]`` and ``"[1,2],0xab"`` gives
    ``["[1,2]", "0xab"]``.
    """
    if not text.strip():
        return []

    parts: List[str] = []
    depth = 0
    current = ""
    for char in text:
        if char in "[(":
            depth += 1
        elif char in "])":
            depth -= 1
        if char == "," and depth == 0:
            parts.append(current.strip())
            current = ""
        else:
            current += char
    parts.append(current.strip())
    return parts


def coerce_argument(type_str: str, value: Any) -> Any:
    """
    Convert a value to the Python type eth-abi expects for an ABI type.

    Strings are parsed (command-line input); values that already have a
    suitable Python type are returned unchanged.

    Args:
        type_str: Canonical ABI type, e.g. "uint256", "address[]"
        value: Raw value

    Returns:
        Coerced value

    Raises:
        ValueError, TypeError: If the value cannot represent the type
    """
    node = parse(type_str)

    if node.is_array or isinstance(node, TupleType):
        if isinstance(value, str):
            value = json.loads(value)
        if not isinstance(value, (list, tuple)):
            raise TypeError(f"expected a list for {type_str}, got {value!r}")
        if node.is_array:
            item_type = node.item_type.to_type_str()
            return [coerce_argument(item_type, v) for v in value]
        components = [c.to_type_str() for c in node.components]
        if len(components) != len(value):
            raise ValueError(f"expected {len(components)} tuple fields, got {len(value)}")
        return tuple(coerce_argument(t, v) for t, v in zip(components, value))

    base = node.base
    if base in ("uint", "int"):
        if isinstance(value, bool):
            raise TypeError(f"expected an integer, got {value!r}")
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            text = value.strip()
            return int(text, 16) if text.lower().startswith("0x") else int(text)
        raise TypeError(f"expected an integer, got {value!r}")

    if base == "bool":
        if isinstance(value, bool):
            return value
        if isinstance(value, int) and value in (0, 1):
            return bool(value)
        if isinstance(value, str):
            text = value.strip().lower()
            if text in _TRUE_STRINGS:
                return True
            if text in _FALSE_STRINGS:
                return False
        raise ValueError(f"expected a boolean, got {value!r}")

    if base == "address":
        if isinstance(value, str) and _ADDRESS_RE.match(value.strip()):
            return value.strip()
        raise ValueError(f"expected a 0x-prefixed 20-byte address, got {value!r}")

    if base == "string":
        if isinstance(value, str):
            return value
        raise TypeError(f"expected a string, got {value!r}")

    if base == "bytes":
        if isinstance(value, (bytes, bytearray)):
            return bytes(value)
        if isinstance(value, str) and value.lower().startswith("0x"):
            return bytes.fromhex(value[2:])
        raise ValueError(f"expected 0x-prefixed hex bytes, got {value!r}")

    if base in ("fixed", "ufixed"):
        try:
            return Decimal(str(value))
        except InvalidOperation as e:
            raise ValueError(f"expected a decimal number, got {value!r}") from e

    raise TypeError(f"unsupported ABI type {type_str}")


def validate_constructor_args(
    abi: Sequence[Dict[str, Any]], args: Sequence[Any]
) -> List[Any]:
    """
    Check constructor arguments against the constructor signature.

    The input sequence is not modified.

    Args:
        abi: Contract interface descriptor
        args: Caller-supplied arguments, in constructor order

    Returns:
        New list of coerced arguments, ready for encoding

    Raises:
        ArgumentMismatchError: If the arity differs or an argument cannot be
            represented as its declared type
    """
    inputs = constructor_inputs(abi)
    try:
        expected = [abi_type_string(entry) for entry in inputs]
    except (ParseError, ValueError) as e:
        raise ArgumentMismatchError(f"Unsupported constructor signature: {e}") from e

    if len(args) != len(expected):
        raise ArgumentMismatchError(
            f"Constructor expects {len(expected)} argument(s) "
            f"({', '.join(expected) or 'none'}), got {len(args)}",
            expected=expected,
            received=args,
        )

    coerced: List[Any] = []
    for position, (entry, type_str, value) in enumerate(zip(inputs, expected, args)):
        label = entry.get("name") or f"#{position}"
        try:
            converted = coerce_argument(type_str, value)
        except (ValueError, TypeError, ParseError) as e:
            raise ArgumentMismatchError(
                f"Argument {label} ({type_str}): {e}", expected=expected, received=args
            ) from e

        if not is_encodable(type_str, converted):
            raise ArgumentMismatchError(
                f"Argument {label} ({type_str}): {value!r} is out of range for the type",
                expected=expected,
                received=args,
            )
        coerced.append(converted)

    return coerced


def encode_constructor_args(abi: Sequence[Dict[str, Any]], args: Sequence[Any]) -> bytes:
    """
    ABI-encode already validated constructor arguments.

    Returns:
        Encoded arguments; empty bytes for a constructor without inputs
    """
    types = [abi_type_string(entry) for entry in constructor_inputs(abi)]
    if not types:
        return b""
    return encode(types, list(args))


def build_deployment_data(contract: CompiledContract, args: Sequence[Any]) -> bytes:
    """Concatenate creation bytecode and encoded constructor arguments."""
    return contract.bytecode + encode_constructor_args(contract.abi, args)
