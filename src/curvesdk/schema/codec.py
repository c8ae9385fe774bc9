"""
Binary codec for Anchor (Borsh) layouts.

Integers are fixed-width little-endian, strings and vectors carry a u32
length prefix, options carry a presence byte, public keys are 32 raw bytes.
Account data and return values share the same decoding rules.
"""

import struct
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from solders.pubkey import Pubkey

from ..errors import DecodeFailure
from .models import FieldSpec, StructSpec

# name -> (byte width, signed)
INTEGER_TYPES = {
    "u8": (1, False),
    "u16": (2, False),
    "u32": (4, False),
    "u64": (8, False),
    "u128": (16, False),
    "i8": (1, True),
    "i16": (2, True),
    "i32": (4, True),
    "i64": (8, True),
    "i128": (16, True),
}

PUBKEY_TYPES = ("publicKey", "pubkey")

TypeResolver = Callable[[str], Optional[StructSpec]]


def _no_types(name: str) -> Optional[StructSpec]:
    return None


def _resolve(name: str, resolve: TypeResolver) -> StructSpec:
    spec = resolve(name)
    if spec is None:
        raise KeyError(f"Unknown defined type: {name}")
    return spec


def to_pubkey(value: Any) -> Pubkey:
    """Coerce a Pubkey, base58 string or 32 raw bytes to a Pubkey."""
    if isinstance(value, Pubkey):
        return value
    if isinstance(value, str):
        return Pubkey.from_string(value)
    if isinstance(value, (bytes, bytearray)) and len(value) == 32:
        return Pubkey.from_bytes(bytes(value))
    raise TypeError(f"Cannot interpret {value!r} as a public key")


def encode_value(field_type: Any, value: Any, resolve: TypeResolver = _no_types) -> bytes:
    """
    Encode one value against its IDL type.

    Raises:
        TypeError, ValueError, OverflowError, KeyError: value does not fit the type
    """
    if isinstance(field_type, str):
        if field_type in INTEGER_TYPES:
            width, signed = INTEGER_TYPES[field_type]
            if isinstance(value, bool) or not isinstance(value, int):
                raise TypeError(f"{field_type} expects an int, got {value!r}")
            return value.to_bytes(width, "little", signed=signed)
        if field_type == "bool":
            if not isinstance(value, bool):
                raise TypeError(f"bool expects a bool, got {value!r}")
            return struct.pack("<B", 1 if value else 0)
        if field_type == "string":
            if not isinstance(value, str):
                raise TypeError(f"string expects a str, got {value!r}")
            encoded = value.encode("utf-8")
            return struct.pack("<I", len(encoded)) + encoded
        if field_type == "bytes":
            raw = bytes(value)
            return struct.pack("<I", len(raw)) + raw
        if field_type in PUBKEY_TYPES:
            return bytes(to_pubkey(value))
        raise KeyError(f"Unsupported type: {field_type}")

    if "option" in field_type:
        if value is None:
            return b"\x00"
        return b"\x01" + encode_value(field_type["option"], value, resolve)
    if "vec" in field_type:
        items = list(value)
        data = struct.pack("<I", len(items))
        for item in items:
            data += encode_value(field_type["vec"], item, resolve)
        return data
    if "array" in field_type:
        inner, length = field_type["array"]
        items = list(value)
        if len(items) != length:
            raise ValueError(f"array expects {length} items, got {len(items)}")
        return b"".join(encode_value(inner, item, resolve) for item in items)
    if "defined" in field_type:
        spec = _resolve(field_type["defined"], resolve)
        return encode_fields(spec.fields, value, resolve)

    raise KeyError(f"Unsupported type: {field_type}")


def encode_fields(
    fields: Sequence[FieldSpec],
    values: Dict[str, Any],
    resolve: TypeResolver = _no_types,
) -> bytes:
    """Encode ``values`` in declared field order. Missing keys raise KeyError."""
    return b"".join(encode_value(f.field_type, values[f.name], resolve) for f in fields)


def _take(data: bytes, offset: int, size: int) -> bytes:
    end = offset + size
    if end > len(data):
        raise DecodeFailure(
            f"Need {size} bytes at offset {offset}, only {len(data) - offset} left"
        )
    return data[offset:end]


def decode_value(
    field_type: Any,
    data: bytes,
    offset: int = 0,
    resolve: TypeResolver = _no_types,
) -> Tuple[Any, int]:
    """
    Decode one value starting at ``offset``.

    Returns:
        (value, new_offset)

    Raises:
        DecodeFailure: data is short or not a valid encoding of the type
    """
    if isinstance(field_type, str):
        if field_type in INTEGER_TYPES:
            width, signed = INTEGER_TYPES[field_type]
            raw = _take(data, offset, width)
            return int.from_bytes(raw, "little", signed=signed), offset + width
        if field_type == "bool":
            flag = _take(data, offset, 1)[0]
            if flag > 1:
                raise DecodeFailure(f"Invalid bool byte {flag} at offset {offset}")
            return flag == 1, offset + 1
        if field_type in ("string", "bytes"):
            (length,) = struct.unpack("<I", _take(data, offset, 4))
            raw = _take(data, offset + 4, length)
            if field_type == "bytes":
                return raw, offset + 4 + length
            try:
                return raw.decode("utf-8"), offset + 4 + length
            except UnicodeDecodeError as exc:
                raise DecodeFailure(f"Invalid UTF-8 string at offset {offset}") from exc
        if field_type in PUBKEY_TYPES:
            return Pubkey.from_bytes(_take(data, offset, 32)), offset + 32
        raise DecodeFailure(f"Unsupported type: {field_type}")

    if "option" in field_type:
        flag = _take(data, offset, 1)[0]
        if flag == 0:
            return None, offset + 1
        if flag != 1:
            raise DecodeFailure(f"Invalid option tag {flag} at offset {offset}")
        return decode_value(field_type["option"], data, offset + 1, resolve)
    if "vec" in field_type:
        (count,) = struct.unpack("<I", _take(data, offset, 4))
        offset += 4
        items = []
        for _ in range(count):
            item, offset = decode_value(field_type["vec"], data, offset, resolve)
            items.append(item)
        return items, offset
    if "array" in field_type:
        inner, length = field_type["array"]
        items = []
        for _ in range(length):
            item, offset = decode_value(inner, data, offset, resolve)
            items.append(item)
        return items, offset
    if "defined" in field_type:
        spec = resolve(field_type["defined"])
        if spec is None:
            raise DecodeFailure(f"Unknown defined type: {field_type['defined']}")
        return decode_fields(spec.fields, data, offset, resolve)

    raise DecodeFailure(f"Unsupported type: {field_type}")


def decode_fields(
    fields: Sequence[FieldSpec],
    data: bytes,
    offset: int = 0,
    resolve: TypeResolver = _no_types,
) -> Tuple[Dict[str, Any], int]:
    """Decode a struct or argument list in declared field order."""
    values: Dict[str, Any] = {}
    for f in fields:
        values[f.name], offset = decode_value(f.field_type, data, offset, resolve)
    return values, offset


def decode_exact(field_type: Any, data: bytes, resolve: TypeResolver = _no_types) -> Any:
    """Decode a value that must occupy the whole buffer."""
    value, end = decode_value(field_type, data, 0, resolve)
    if end != len(data):
        raise DecodeFailure(
            f"{len(data) - end} trailing bytes after {field_type} payload"
        )
    return value
