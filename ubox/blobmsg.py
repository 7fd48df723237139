"""Named, typed attributes built on top of blob attributes.

A blobmsg attribute is an *extended* blob attribute whose payload starts
with a header: a 16-bit big-endian name length, the name, a NUL byte and
padding to 4 bytes.  The value follows that header.  Tables hold named
attributes, arrays hold unnamed ones.
"""

from __future__ import annotations

import enum
import struct
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional, Sequence, Union

from ubox.blob import HEADER_LEN, BlobAttr, BlobBuf, BlobType, check_type, iter_attrs

__all__ = [
    "BlobmsgType",
    "BlobmsgPolicy",
    "BlobmsgBuf",
    "hdrlen",
    "name",
    "data",
    "data_len",
    "attrs",
    "check_attr",
    "check_attr_len",
    "check_array",
    "check_array_len",
    "check_attr_list",
    "check_attr_list_len",
    "parse",
    "parse_array",
    "get_u8",
    "get_bool",
    "get_u16",
    "get_u32",
    "get_u64",
    "get_double",
    "get_string",
    "cast_u64",
    "cast_s64",
]

_ALIGN = 4
_NAMELEN = struct.Struct(">H")


class BlobmsgType(enum.IntEnum):
    """Value types of blobmsg attributes (stored as the blob id)."""

    UNSPEC = 0
    ARRAY = 1
    TABLE = 2
    STRING = 3
    INT64 = 4
    INT32 = 5
    INT16 = 6
    INT8 = 7
    BOOL = 7
    DOUBLE = 8
    LAST = 8
    CAST_INT64 = 9


_BLOB_TYPE = {
    BlobmsgType.INT8: BlobType.INT8,
    BlobmsgType.INT16: BlobType.INT16,
    BlobmsgType.INT32: BlobType.INT32,
    BlobmsgType.INT64: BlobType.INT64,
    BlobmsgType.DOUBLE: BlobType.DOUBLE,
    BlobmsgType.STRING: BlobType.STRING,
    BlobmsgType.UNSPEC: BlobType.BINARY,
}

_INT_TYPES = (
    BlobmsgType.INT64,
    BlobmsgType.INT32,
    BlobmsgType.INT16,
    BlobmsgType.INT8,
)


@dataclass(frozen=True)
class BlobmsgPolicy:
    """Expected name and type of one attribute when parsing."""

    name: Optional[str] = None
    type: int = BlobmsgType.UNSPEC


def hdrlen(namelen: int) -> int:
    """Size of the name header for a name of ``namelen`` bytes."""
    return (_NAMELEN.size + namelen + 1 + _ALIGN - 1) & ~(_ALIGN - 1)


def _namelen(attr: BlobAttr) -> int:
    payload = attr.data
    if len(payload) < _NAMELEN.size:
        return 0
    return _NAMELEN.unpack_from(payload)[0]


def name(attr: BlobAttr) -> str:
    """The name of an attribute; empty for attributes without a header."""
    if not attr.extended:
        return ""
    raw = attr.data[_NAMELEN.size:_NAMELEN.size + _namelen(attr)]
    return raw.split(b"\0", 1)[0].decode("utf-8", "replace")


def data(attr: BlobAttr) -> bytes:
    """The value bytes of an attribute, after any name header."""
    payload = attr.data
    if attr.extended:
        return payload[hdrlen(_namelen(attr)):]
    return payload


def data_len(attr: BlobAttr) -> int:
    """Length of the value bytes."""
    return len(data(attr))


def attrs(attr: BlobAttr) -> Iterator[BlobAttr]:
    """Iterate over the attributes held in a table or array."""
    return iter_attrs(data(attr))


def _walk(payload: bytes) -> Iterator[tuple[BlobAttr, int]]:
    offset = 0
    rem = len(payload)
    while rem >= HEADER_LEN:
        attr = BlobAttr(payload[offset:])
        pad = attr.pad_len
        if pad > rem or pad < HEADER_LEN:
            break
        yield BlobAttr(payload[offset:offset + pad]), rem
        rem -= pad
        offset += pad


def _check_name(attr: BlobAttr, want_name: bool) -> bool:
    if not attr.extended:
        return not want_name
    payload = attr.data
    if len(payload) < _NAMELEN.size:
        return False
    namelen = _namelen(attr)
    if want_name and not namelen:
        return False
    if len(payload) < hdrlen(namelen):
        return False
    return payload[_NAMELEN.size + namelen] == 0


def check_attr_len(attr: BlobAttr, name: bool, length: int) -> bool:
    """Validate one attribute that must fit within ``length`` bytes."""
    if length < HEADER_LEN:
        return False
    raw_len = attr.raw_len
    if raw_len < HEADER_LEN or raw_len > length or len(bytes(attr)) < raw_len:
        return False
    if not _check_name(attr, name):
        return False
    ident = attr.id
    if ident > BlobmsgType.LAST:
        return False
    blob_type = _BLOB_TYPE.get(BlobmsgType(ident))
    if blob_type is None:
        return True
    return check_type(data(attr), blob_type)


def check_attr(attr: BlobAttr, name: bool) -> bool:
    """Validate one attribute; ``name`` demands a non-empty name."""
    return check_attr_len(attr, name, attr.raw_len)


def check_array_len(attr: BlobAttr, type: int, length: int) -> int:
    """Validate a table or array and return its number of elements.

    Elements must all be of ``type`` unless it is UNSPEC.  Raises
    ValueError if the container or any element is invalid.
    """
    if type > BlobmsgType.LAST:
        raise ValueError(f"invalid element type {type}")
    if not check_attr_len(attr, False, length):
        raise ValueError("invalid container attribute")
    if attr.id == BlobmsgType.TABLE:
        want_name = True
    elif attr.id == BlobmsgType.ARRAY:
        want_name = False
    else:
        raise ValueError("attribute is neither a table nor an array")

    size = 0
    for cur, rem in _walk(data(attr)):
        if type != BlobmsgType.UNSPEC and cur.id != type:
            raise ValueError(f"element of type {cur.id}, expected {type}")
        if not check_attr_len(cur, want_name, rem):
            raise ValueError("invalid element")
        size += 1
    return size


def check_array(attr: BlobAttr, type: int) -> int:
    """Validate a trusted table or array and return its size."""
    return check_array_len(attr, type, attr.raw_len)


def check_attr_list_len(attr: BlobAttr, type: int, length: int) -> bool:
    """Whether :func:`check_array_len` accepts the container."""
    try:
        check_array_len(attr, type, length)
    except ValueError:
        return False
    return True


def check_attr_list(attr: BlobAttr, type: int) -> bool:
    """Whether :func:`check_array` accepts the container."""
    return check_attr_list_len(attr, type, attr.raw_len)


Payload = Union[bytes, bytearray, memoryview, BlobAttr]


def _payload(source: Payload) -> bytes:
    if isinstance(source, BlobAttr):
        return data(source)
    return bytes(source)


def parse(policy: Sequence[BlobmsgPolicy], data: Payload) -> list[Optional[BlobAttr]]:
    """Pick named attributes out of a table's content.

    ``data`` is the run of attributes, or a container whose content is
    used.  The result holds one entry per policy entry: the first
    attribute with that name and type, or None.  Raises ValueError on
    empty input or on a malformed attribute.
    """
    payload = _payload(data)
    table: list[Optional[BlobAttr]] = [None] * len(policy)
    if not payload:
        raise ValueError("no data to parse")
    wanted = [None if p.name is None else p.name.encode("utf-8") for p in policy]

    for attr, rem in _walk(payload):
        if not check_attr_len(attr, False, rem):
            raise ValueError("malformed attribute")
        if not attr.extended:
            continue
        attr_name = name(attr).encode("utf-8")
        namelen = _namelen(attr)
        for i, rule in enumerate(policy):
            if wanted[i] is None:
                continue
            if (rule.type not in (BlobmsgType.UNSPEC, BlobmsgType.CAST_INT64)
                    and attr.id != rule.type):
                continue
            if rule.type == BlobmsgType.CAST_INT64 and attr.id not in _INT_TYPES:
                continue
            if namelen != len(wanted[i]):
                continue
            if table[i] is not None:
                continue
            if wanted[i] != attr_name:
                continue
            table[i] = attr
    return table


def parse_array(policy: Sequence[BlobmsgPolicy], data: Payload) -> list[Optional[BlobAttr]]:
    """Assign attributes to policy slots by position.

    Each slot takes the next attribute of its type (any type for UNSPEC);
    attributes of another type are skipped.  Raises ValueError on a
    malformed attribute.
    """
    payload = _payload(data)
    table: list[Optional[BlobAttr]] = [None] * len(policy)
    if not policy:
        return table
    i = 0
    for attr, rem in _walk(payload):
        rule = policy[i]
        if rule.type != BlobmsgType.UNSPEC and attr.id != rule.type:
            continue
        if not check_attr_len(attr, False, rem):
            raise ValueError("malformed attribute")
        table[i] = attr
        i += 1
        if i == len(policy):
            break
    return table


def _unpack(fmt: str, attr: BlobAttr) -> int:
    try:
        return struct.unpack_from(fmt, data(attr))[0]
    except struct.error as exc:
        raise ValueError("value too short for the requested type") from exc


def get_u8(attr: BlobAttr) -> int:
    return _unpack(">B", attr)


def get_bool(attr: BlobAttr) -> bool:
    return bool(get_u8(attr))


def get_u16(attr: BlobAttr) -> int:
    return _unpack(">H", attr)


def get_u32(attr: BlobAttr) -> int:
    return _unpack(">I", attr)


def get_u64(attr: BlobAttr) -> int:
    return _unpack(">Q", attr)


def get_double(attr: BlobAttr) -> float:
    return _unpack(">d", attr)


def get_string(attr: Optional[BlobAttr]) -> Optional[str]:
    """The string value up to its NUL byte, or None for a missing attribute."""
    if attr is None:
        return None
    return data(attr).split(b"\0", 1)[0].decode("utf-8", "replace")


_UNSIGNED = {
    BlobmsgType.INT64: ">Q",
    BlobmsgType.INT32: ">I",
    BlobmsgType.INT16: ">H",
    BlobmsgType.INT8: ">B",
}
_SIGNED = {
    BlobmsgType.INT64: ">q",
    BlobmsgType.INT32: ">i",
    BlobmsgType.INT16: ">h",
    BlobmsgType.INT8: ">b",
}


def cast_u64(attr: BlobAttr) -> int:
    """Any integer attribute as an unsigned value; 0 for other types."""
    fmt = _UNSIGNED.get(attr.id)
    return 0 if fmt is None else _unpack(fmt, attr)


def cast_s64(attr: BlobAttr) -> int:
    """Any integer attribute as a sign-extended value; 0 for other types."""
    fmt = _SIGNED.get(attr.id)
    return 0 if fmt is None else _unpack(fmt, attr)


class BlobmsgBuf(BlobBuf):
    """A buffer building a blobmsg table."""

    def __init__(self) -> None:
        super().__init__(BlobmsgType.TABLE)

    def _new_named(self, type: int, attr_name: Optional[str], payload_len: int) -> tuple[int, int]:
        raw_name = (attr_name or "").encode("utf-8")
        if len(raw_name) > 0xFFFF:
            raise ValueError("attribute name too long")
        header = hdrlen(len(raw_name))
        offset = self._new(type, header + payload_len)
        self._set_extended(offset)
        start = offset + HEADER_LEN
        self._buf[start:start + header] = (
            _NAMELEN.pack(len(raw_name)) + raw_name
            + bytes(header - _NAMELEN.size - len(raw_name))
        )
        return offset, start + header

    def add_field(self, type: int, name: Optional[str],
                  data: Union[bytes, bytearray, memoryview] = b"") -> BlobAttr:
        """Append an attribute of ``type`` with raw value bytes."""
        value = bytes(data)
        offset, start = self._new_named(type, name, len(value))
        self._buf[start:start + len(value)] = value
        return self._attr(offset)

    def add_u8(self, name: Optional[str], value: int) -> BlobAttr:
        return self.add_field(BlobmsgType.INT8, name, struct.pack(">B", value & 0xFF))

    def add_u16(self, name: Optional[str], value: int) -> BlobAttr:
        return self.add_field(BlobmsgType.INT16, name, struct.pack(">H", value & 0xFFFF))

    def add_u32(self, name: Optional[str], value: int) -> BlobAttr:
        return self.add_field(BlobmsgType.INT32, name,
                              struct.pack(">I", value & 0xFFFFFFFF))

    def add_u64(self, name: Optional[str], value: int) -> BlobAttr:
        return self.add_field(BlobmsgType.INT64, name,
                              struct.pack(">Q", value & 0xFFFFFFFFFFFFFFFF))

    def add_double(self, name: Optional[str], value: float) -> BlobAttr:
        return self.add_field(BlobmsgType.DOUBLE, name, struct.pack(">d", value))

    def add_string(self, name: Optional[str], value: Union[str, bytes]) -> BlobAttr:
        raw = value.encode("utf-8") if isinstance(value, str) else bytes(value)
        return self.add_field(BlobmsgType.STRING, name, raw + b"\0")

    def add_blob(self, attr: BlobAttr) -> BlobAttr:
        """Append a copy of another blobmsg attribute."""
        return self.add_field(attr.id, name(attr), data(attr))

    def add_printf(self, name: Optional[str], fmt: str, *args: object) -> int:
        """Append a string formatted with ``%``; return its length in bytes."""
        text = (fmt % args) if args else fmt
        raw = text.encode("utf-8")
        self.add_string(name, raw)
        return len(raw)

    def open_nested(self, name: Optional[str], array: bool) -> int:
        """Open a table or array; return a cookie for closing it."""
        type = BlobmsgType.ARRAY if array else BlobmsgType.TABLE
        cookie = self._head
        offset, _ = self._new_named(type, name, 0)
        header = hdrlen(len((name or "").encode("utf-8")))
        self._set_raw_len(cookie, self._pad_len(cookie) - header)
        self._head = offset
        return cookie

    def open_table(self, name: Optional[str]) -> int:
        return self.open_nested(name, False)

    def open_array(self, name: Optional[str]) -> int:
        return self.open_nested(name, True)

    def close_table(self, cookie: int) -> None:
        self.nest_end(cookie)

    def close_array(self, cookie: int) -> None:
        self.nest_end(cookie)

    @contextmanager
    def table(self, name: Optional[str]) -> Iterator["BlobmsgBuf"]:
        """Context manager for a nested table."""
        cookie = self.open_table(name)
        try:
            yield self
        finally:
            self.close_table(cookie)

    @contextmanager
    def array(self, name: Optional[str]) -> Iterator["BlobmsgBuf"]:
        """Context manager for a nested array."""
        cookie = self.open_array(name)
        try:
            yield self
        finally:
            self.close_array(cookie)