"""
Decoder and encoder for the named binary tag (NBT) tree format stored in chunk payloads.

Encoding
- All multi-byte numbers are big-endian.
- Named tag: u8(tag_id) || string(name) || payload
- String: u16(length) || UTF-8 bytes
- Compound payload: named tags until a single TAG_End byte
- List payload: u8(element tag_id) || u32(count) || count unnamed payloads
- Byte/int/long arrays: u32(count) || count fixed-width items

Root
- The payload of a chunk is one named compound (tag 10) whose name is ignored.

Tag ids
- 0: End (list element placeholder only)
- 1: Byte (i8)        5: Float (f32)       9: List
- 2: Short (i16)      6: Double (f64)     10: Compound
- 3: Int (i32)        7: ByteArray        11: IntArray
- 4: Long (i64)       8: String           12: LongArray

The decoder is written for damaged input: every read is bounded by the data that is
actually available, compound depth is passed explicitly and capped at MAX_NESTING_DEPTH
(compounds and lists together at MAX_TREE_LEVELS), and byte array contents are skipped
rather than retained.
"""

from __future__ import annotations

import io
import struct
import zlib
from dataclasses import dataclass
from functools import partial
from typing import Any, BinaryIO, Dict, List, Optional

from .constants import MAX_END_LIST_LENGTH, MAX_NESTING_DEPTH, MAX_TREE_LEVELS
from .errors import (
    InvalidName,
    InvalidRootTag,
    InvalidTag,
    ListLengthError,
    PayloadReadError,
    RecursionLimit,
)


TAG_END = 0
TAG_BYTE = 1
TAG_SHORT = 2
TAG_INT = 3
TAG_LONG = 4
TAG_FLOAT = 5
TAG_DOUBLE = 6
TAG_BYTE_ARRAY = 7
TAG_STRING = 8
TAG_LIST = 9
TAG_COMPOUND = 10
TAG_INT_ARRAY = 11
TAG_LONG_ARRAY = 12

TAG_NAMES = {
    TAG_END: "End",
    TAG_BYTE: "Byte",
    TAG_SHORT: "Short",
    TAG_INT: "Int",
    TAG_LONG: "Long",
    TAG_FLOAT: "Float",
    TAG_DOUBLE: "Double",
    TAG_BYTE_ARRAY: "ByteArray",
    TAG_STRING: "String",
    TAG_LIST: "List",
    TAG_COMPOUND: "Compound",
    TAG_INT_ARRAY: "IntArray",
    TAG_LONG_ARRAY: "LongArray",
}

_I8 = struct.Struct(">b")
_I16 = struct.Struct(">h")
_I32 = struct.Struct(">i")
_I64 = struct.Struct(">q")
_F32 = struct.Struct(">f")
_F64 = struct.Struct(">d")
_U8 = struct.Struct(">B")
_U16 = struct.Struct(">H")
_U32 = struct.Struct(">I")

_READ_CHUNK = 65536


@dataclass(frozen=True)
class NBTValue:
    tag: int
    value: Any

    def as_int(self) -> Optional[int]:
        return self.value if self.tag == TAG_INT else None

    def as_compound(self) -> Optional[Dict[str, "NBTValue"]]:
        return self.value if self.tag == TAG_COMPOUND else None

    def __repr__(self) -> str:
        return f"{TAG_NAMES.get(self.tag, self.tag)}({self.value!r})"


ABSENT = NBTValue(TAG_END, None)

Byte = partial(NBTValue, TAG_BYTE)
Short = partial(NBTValue, TAG_SHORT)
Int = partial(NBTValue, TAG_INT)
Long = partial(NBTValue, TAG_LONG)
Float = partial(NBTValue, TAG_FLOAT)
Double = partial(NBTValue, TAG_DOUBLE)
ByteArray = partial(NBTValue, TAG_BYTE_ARRAY)
String = partial(NBTValue, TAG_STRING)
NBTList = partial(NBTValue, TAG_LIST)
Compound = partial(NBTValue, TAG_COMPOUND)
IntArray = partial(NBTValue, TAG_INT_ARRAY)
LongArray = partial(NBTValue, TAG_LONG_ARRAY)


# -------- Decoding --------

class _Reader:
    def __init__(self, stream: BinaryIO):
        self.stream = stream

    def read_exact(self, n: int) -> bytes:
        if n <= _READ_CHUNK:
            b = self._read(n)
            if len(b) != n:
                raise PayloadReadError("Unexpected end of payload")
            return b
        parts: List[bytes] = []
        remaining = n
        while remaining:
            part = self._read(min(remaining, _READ_CHUNK))
            if not part:
                raise PayloadReadError("Unexpected end of payload")
            parts.append(part)
            remaining -= len(part)
        return b"".join(parts)

    def skip(self, n: int) -> None:
        while n:
            part = self._read(min(n, _READ_CHUNK))
            if not part:
                raise PayloadReadError("Unexpected end of payload")
            n -= len(part)

    def unpack(self, st: struct.Struct):
        return st.unpack(self.read_exact(st.size))[0]

    def _read(self, n: int) -> bytes:
        try:
            return self.stream.read(n)
        except (OSError, EOFError, zlib.error) as exc:
            raise PayloadReadError(f"Failed to read payload: {exc}") from exc


def load(stream: BinaryIO) -> Dict[str, NBTValue]:
    """Decode a root compound from a stream."""
    r = _Reader(stream)
    tag_id = r.unpack(_U8)
    if tag_id != TAG_COMPOUND:
        raise InvalidRootTag(tag_id)
    # root name is consumed, never decoded
    r.skip(r.unpack(_U16))
    return _read_compound(r, 0, 0)


def loads(data: bytes) -> Dict[str, NBTValue]:
    return load(io.BytesIO(data))


def _read_string(r: _Reader) -> str:
    length = r.unpack(_U16)
    if length == 0:
        return ""
    try:
        return r.read_exact(length).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise InvalidName("Encountered invalid tag name") from exc


def _descend(levels: int) -> int:
    levels += 1
    if levels > MAX_TREE_LEVELS:
        raise RecursionLimit(f"Reached nesting limit ({MAX_TREE_LEVELS} compounds and lists)")
    return levels


def _read_compound(r: _Reader, depth: int, levels: int) -> Dict[str, NBTValue]:
    # depth counts compounds only; levels counts every container
    depth += 1
    if depth > MAX_NESTING_DEPTH:
        raise RecursionLimit(f"Reached recursion limit ({MAX_NESTING_DEPTH})")
    levels = _descend(levels)
    out: Dict[str, NBTValue] = {}
    while True:
        tag_id = r.unpack(_U8)
        if tag_id == TAG_END:
            return out
        name = _read_string(r)
        out[name] = _read_value(r, tag_id, depth, levels)


def _read_list(r: _Reader, depth: int, levels: int) -> List[NBTValue]:
    levels = _descend(levels)
    tag_id = r.unpack(_U8)
    count = r.unpack(_U32)
    if tag_id == TAG_END:
        if count > MAX_END_LIST_LENGTH:
            raise ListLengthError(f"List of TAG_End too long: {count}")
        return [ABSENT] * count
    if tag_id > TAG_LONG_ARRAY:
        raise InvalidTag(tag_id)
    return [_read_value(r, tag_id, depth, levels) for _ in range(count)]


def _read_array(r: _Reader, st: struct.Struct) -> List[int]:
    count = r.unpack(_U32)
    if count == 0:
        return []
    raw = r.read_exact(count * st.size)
    return list(struct.unpack(f">{count}{st.format[-1]}", raw))


def _read_value(r: _Reader, tag_id: int, depth: int, levels: int) -> NBTValue:
    if tag_id == TAG_BYTE:
        return NBTValue(tag_id, r.unpack(_I8))
    elif tag_id == TAG_SHORT:
        return NBTValue(tag_id, r.unpack(_I16))
    elif tag_id == TAG_INT:
        return NBTValue(tag_id, r.unpack(_I32))
    elif tag_id == TAG_LONG:
        return NBTValue(tag_id, r.unpack(_I64))
    elif tag_id == TAG_FLOAT:
        return NBTValue(tag_id, r.unpack(_F32))
    elif tag_id == TAG_DOUBLE:
        return NBTValue(tag_id, r.unpack(_F64))
    elif tag_id == TAG_BYTE_ARRAY:
        # contents are never inspected; consume without keeping them
        r.skip(r.unpack(_U32))
        return NBTValue(tag_id, b"")
    elif tag_id == TAG_STRING:
        return NBTValue(tag_id, _read_string(r))
    elif tag_id == TAG_LIST:
        return NBTValue(tag_id, _read_list(r, depth, levels))
    elif tag_id == TAG_COMPOUND:
        return NBTValue(tag_id, _read_compound(r, depth, levels))
    elif tag_id == TAG_INT_ARRAY:
        return NBTValue(tag_id, _read_array(r, _I32))
    elif tag_id == TAG_LONG_ARRAY:
        return NBTValue(tag_id, _read_array(r, _I64))
    raise InvalidTag(tag_id)


# -------- Encoding --------

def dump(root: Dict[str, NBTValue], stream: BinaryIO, name: str = "") -> None:
    stream.write(dumps(root, name=name))


def dumps(root: Dict[str, NBTValue], name: str = "") -> bytes:
    """Encode a root compound (mapping of name to NBTValue)."""
    out = bytearray()
    out += _U8.pack(TAG_COMPOUND)
    _write_string(out, name)
    _write_compound(out, root)
    return bytes(out)


def _write_string(out: bytearray, s: str) -> None:
    b = s.encode("utf-8")
    if len(b) > 0xFFFF:
        raise ValueError("string too long for NBT")
    out += _U16.pack(len(b))
    out += b


def _write_compound(out: bytearray, items: Dict[str, NBTValue]) -> None:
    for key, val in items.items():
        if val.tag == TAG_END:
            raise ValueError("TAG_End cannot be stored in a compound")
        out += _U8.pack(val.tag)
        _write_string(out, key)
        _write_value(out, val)
    out += _U8.pack(TAG_END)


def _write_value(out: bytearray, val: NBTValue) -> None:
    tag, v = val.tag, val.value
    if tag == TAG_END:
        return
    elif tag == TAG_BYTE:
        out += _I8.pack(v)
    elif tag == TAG_SHORT:
        out += _I16.pack(v)
    elif tag == TAG_INT:
        out += _I32.pack(v)
    elif tag == TAG_LONG:
        out += _I64.pack(v)
    elif tag == TAG_FLOAT:
        out += _F32.pack(v)
    elif tag == TAG_DOUBLE:
        out += _F64.pack(v)
    elif tag == TAG_BYTE_ARRAY:
        out += _U32.pack(len(v))
        out += bytes(v)
    elif tag == TAG_STRING:
        _write_string(out, v)
    elif tag == TAG_LIST:
        elem_tag = v[0].tag if v else TAG_END
        if any(item.tag != elem_tag for item in v):
            raise ValueError("NBT lists must be homogeneous")
        out += _U8.pack(elem_tag)
        out += _U32.pack(len(v))
        for item in v:
            _write_value(out, item)
    elif tag == TAG_COMPOUND:
        _write_compound(out, v)
    elif tag == TAG_INT_ARRAY:
        out += _U32.pack(len(v))
        out += struct.pack(f">{len(v)}i", *v)
    elif tag == TAG_LONG_ARRAY:
        out += _U32.pack(len(v))
        out += struct.pack(f">{len(v)}q", *v)
    else:
        raise ValueError(f"unsupported tag id: {tag}")
