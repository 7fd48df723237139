"""Tagged binary attributes.

Every attribute starts with a 32-bit big-endian header: bit 31 marks an
"extended" attribute, bits 24-30 hold the id and bits 0-23 the length,
header included.  Attributes are padded to 4 bytes and may nest: the
payload of a container is simply a run of attributes.
"""

from __future__ import annotations

import enum
import struct
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, Sequence, Union

__all__ = [
    "BlobType",
    "BlobAttr",
    "BlobAttrInfo",
    "BlobBuf",
    "iter_attrs",
    "check_type",
    "parse",
    "parse_untrusted",
    "blobcmp",
]

ID_MASK = 0x7F000000
ID_SHIFT = 24
LEN_MASK = 0x00FFFFFF
ALIGN = 4
EXTENDED = 0x80000000
HEADER_LEN = 4
MAX_ID = ID_MASK >> ID_SHIFT

_HEADER = struct.Struct(">I")


class BlobType(enum.IntEnum):
    """Payload types used to validate attributes."""

    UNSPEC = 0
    NESTED = 1
    BINARY = 2
    STRING = 3
    INT8 = 4
    INT16 = 5
    INT32 = 6
    INT64 = 7
    DOUBLE = 8
    LAST = 9


_MINLEN = {
    BlobType.STRING: 1,
    BlobType.INT8: 1,
    BlobType.INT16: 2,
    BlobType.INT32: 4,
    BlobType.INT64: 8,
    BlobType.DOUBLE: 8,
}


def _pad(length: int) -> int:
    return (length + ALIGN - 1) & ~(ALIGN - 1)


def _header_raw_len(data: bytes, offset: int) -> int:
    return _HEADER.unpack_from(data, offset)[0] & LEN_MASK


class BlobAttr:
    """An immutable view of one attribute, header included."""

    __slots__ = ("_raw",)

    def __init__(self, raw: Union[bytes, bytearray, memoryview]) -> None:
        raw = bytes(raw)
        if len(raw) < HEADER_LEN:
            raise ValueError("blob attribute shorter than its header")
        self._raw = raw

    @property
    def _id_len(self) -> int:
        return _HEADER.unpack_from(self._raw)[0]

    @property
    def id(self) -> int:
        """The attribute id (0-127)."""
        return (self._id_len & ID_MASK) >> ID_SHIFT

    @property
    def extended(self) -> bool:
        """Whether the extended bit of the header is set."""
        return bool(self._id_len & EXTENDED)

    @property
    def raw_len(self) -> int:
        """Length of the attribute including its header."""
        return self._id_len & LEN_MASK

    @property
    def length(self) -> int:
        """Length of the payload."""
        return self.raw_len - HEADER_LEN

    @property
    def pad_len(self) -> int:
        """Length including header and alignment padding."""
        return _pad(self.raw_len)

    @property
    def data(self) -> bytes:
        """The payload bytes."""
        return self._raw[HEADER_LEN:max(self.raw_len, HEADER_LEN)]

    def _unpack(self, fmt: str) -> int:
        try:
            return struct.unpack_from(fmt, self.data)[0]
        except struct.error as exc:
            raise ValueError("payload too short for the requested value") from exc

    def get_u8(self) -> int:
        return self._unpack(">B")

    def get_u16(self) -> int:
        return self._unpack(">H")

    def get_u32(self) -> int:
        return self._unpack(">I")

    def get_u64(self) -> int:
        return self._unpack(">Q")

    def get_int8(self) -> int:
        return self._unpack(">b")

    def get_int16(self) -> int:
        return self._unpack(">h")

    def get_int32(self) -> int:
        return self._unpack(">i")

    def get_int64(self) -> int:
        return self._unpack(">q")

    def get_string(self) -> str:
        """The payload up to its first NUL byte, decoded as UTF-8."""
        return self.data.split(b"\0", 1)[0].decode("utf-8", "replace")

    def children(self) -> Iterator["BlobAttr"]:
        """Iterate over the attributes nested in the payload."""
        return iter_attrs(self.data)

    def __bytes__(self) -> bytes:
        return self._raw[:self.pad_len]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BlobAttr):
            return NotImplemented
        return self.pad_len == other.pad_len and bytes(self) == bytes(other)

    def __hash__(self) -> int:
        return hash(bytes(self))

    def __repr__(self) -> str:
        return f"BlobAttr(id={self.id}, length={self.length}, data={self.data!r})"


def _walk(data: bytes) -> Iterator[tuple[BlobAttr, int]]:
    offset = 0
    rem = len(data)
    while rem >= HEADER_LEN:
        pad = _pad(_header_raw_len(data, offset))
        if pad > rem or pad < HEADER_LEN:
            break
        yield BlobAttr(data[offset:offset + pad]), rem
        rem -= pad
        offset += pad


def iter_attrs(data: Union[bytes, bytearray, memoryview]) -> Iterator[BlobAttr]:
    """Iterate over a run of attributes, stopping at the first malformed one."""
    for attr, _ in _walk(bytes(data)):
        yield attr


def check_type(data: Union[bytes, bytearray, memoryview], type: int) -> bool:
    """Check that a payload is acceptable for the given :class:`BlobType`."""
    data = bytes(data)
    if type < 0 or type >= BlobType.LAST:
        return False
    minlen = _MINLEN.get(BlobType(type), 0)
    if BlobType.INT8 <= type <= BlobType.INT64:
        if len(data) != minlen:
            return False
    elif len(data) < minlen:
        return False
    if type == BlobType.STRING and data[-1] != 0:
        return False
    return True


@dataclass(frozen=True)
class BlobAttrInfo:
    """Validation rule for one attribute id."""

    type: int = BlobType.UNSPEC
    minlen: int = 0
    maxlen: int = 0
    validate: Optional[Callable[["BlobAttrInfo", BlobAttr], bool]] = None


def _accept(attr: BlobAttr, attr_len: int, info: Optional[Sequence[Optional[BlobAttrInfo]]],
            max: int) -> bool:
    if attr_len < HEADER_LEN:
        return False
    ident = attr.id
    if ident >= max:
        return False
    length = attr.raw_len
    if length > attr_len or length < HEADER_LEN:
        return False
    if info is not None and ident < len(info) and info[ident] is not None:
        rule = info[ident]
        if rule.type < BlobType.LAST and not check_type(attr.data, rule.type):
            return False
        if rule.minlen and length < rule.minlen:
            return False
        if rule.maxlen and length > rule.maxlen:
            return False
        if rule.validate is not None and not rule.validate(rule, attr):
            return False
    return True


def _default_max(info: Optional[Sequence[Optional[BlobAttrInfo]]], max: Optional[int]) -> int:
    if max is not None:
        return max
    return len(info) if info is not None else MAX_ID + 1


def _fill(data: bytes, info, max: int) -> list[Optional[BlobAttr]]:
    table: list[Optional[BlobAttr]] = [None] * max
    for attr, rem in _walk(data):
        if _accept(attr, rem, info, max):
            table[attr.id] = attr
    return table


def parse(attr: Union[BlobAttr, bytes], info: Optional[Sequence[Optional[BlobAttrInfo]]] = None,
          max: Optional[int] = None) -> list[Optional[BlobAttr]]:
    """Index the children of a trusted container by id.

    Returns a list of ``max`` entries; ids that were absent or failed
    validation map to None.  A later attribute with the same id wins.
    """
    if not isinstance(attr, BlobAttr):
        attr = BlobAttr(attr)
    return _fill(attr.data, info, _default_max(info, max))


def parse_untrusted(raw: Union[bytes, bytearray, memoryview],
                    info: Optional[Sequence[Optional[BlobAttrInfo]]] = None,
                    max: Optional[int] = None) -> list[Optional[BlobAttr]]:
    """Like :func:`parse`, but checks that the container fits in ``raw``."""
    raw = bytes(raw)
    limit = _default_max(info, max)
    if len(raw) < HEADER_LEN:
        return [None] * limit
    attr = BlobAttr(raw)
    if len(raw) < attr.raw_len:
        return [None] * limit
    return _fill(attr.data, info, limit)


def blobcmp(a: Union[BlobAttr, bytes], b: Union[BlobAttr, bytes]) -> int:
    """Compare two attributes bytewise over the shorter of their lengths."""
    ra, rb = bytes(a), bytes(b)
    n = min(BlobAttr(ra).raw_len, BlobAttr(rb).raw_len)
    x, y = ra[:n], rb[:n]
    return (x > y) - (x < y)


class BlobBuf:
    """A growable buffer that builds a container attribute."""

    def __init__(self, id: int = 0) -> None:
        self._buf = bytearray()
        self._head = 0
        self.reset(id)

    def reset(self, id: int = 0) -> None:
        """Discard the content and start a new empty root with ``id``."""
        self._buf = bytearray()
        self._head = 0
        self._add(0, id, 0)

    # low-level helpers

    def _id_len(self, offset: int) -> int:
        return _HEADER.unpack_from(self._buf, offset)[0]

    def _raw_len(self, offset: int) -> int:
        return self._id_len(offset) & LEN_MASK

    def _pad_len(self, offset: int) -> int:
        return _pad(self._raw_len(offset))

    def _set_raw_len(self, offset: int, length: int) -> None:
        value = (self._id_len(offset) & ~LEN_MASK & 0xFFFFFFFF) | (length & LEN_MASK)
        _HEADER.pack_into(self._buf, offset, value)

    def _set_extended(self, offset: int) -> None:
        _HEADER.pack_into(self._buf, offset, self._id_len(offset) | EXTENDED)

    def _ensure(self, end: int) -> None:
        if len(self._buf) < end:
            self._buf.extend(bytes(end - len(self._buf)))

    def _add(self, offset: int, id: int, payload: int) -> int:
        raw = HEADER_LEN + payload
        if raw > LEN_MASK:
            raise ValueError("blob attribute too large")
        padded = _pad(raw)
        self._ensure(offset + padded)
        _HEADER.pack_into(self._buf, offset, raw | ((id << ID_SHIFT) & ID_MASK))
        self._buf[offset + raw:offset + padded] = bytes(padded - raw)
        return offset

    def _next(self) -> int:
        return self._head + self._pad_len(self._head)

    def _new(self, id: int, payload: int) -> int:
        offset = self._add(self._next(), id, payload)
        self._set_raw_len(self._head, self._pad_len(self._head) + self._pad_len(offset))
        return offset

    def _attr(self, offset: int) -> BlobAttr:
        end = offset + max(self._pad_len(offset), HEADER_LEN)
        return BlobAttr(bytes(self._buf[offset:end]))

    # public interface

    @property
    def head(self) -> BlobAttr:
        """A snapshot of the current container (the root outside nests)."""
        return self._attr(self._head)

    def put(self, id: int, data: Union[bytes, bytearray, memoryview] = b"") -> BlobAttr:
        """Append an attribute with the given payload."""
        data = bytes(data)
        offset = self._new(id, len(data))
        self._buf[offset + HEADER_LEN:offset + HEADER_LEN + len(data)] = data
        return self._attr(offset)

    def put_raw(self, data: Union[bytes, bytearray, memoryview, BlobAttr]) -> BlobAttr:
        """Append a complete, already encoded attribute."""
        data = bytes(data)
        if len(data) < HEADER_LEN:
            raise ValueError("raw attribute shorter than its header")
        offset = self._add(self._next(), 0, len(data) - HEADER_LEN)
        self._set_raw_len(self._head, self._pad_len(self._head) + len(data))
        self._buf[offset:offset + len(data)] = data
        self._ensure(offset + self._pad_len(offset))
        return self._attr(offset)

    def put_string(self, id: int, text: Union[str, bytes]) -> BlobAttr:
        """Append a NUL-terminated string."""
        raw = text.encode("utf-8") if isinstance(text, str) else bytes(text)
        return self.put(id, raw + b"\0")

    def put_u8(self, id: int, value: int) -> BlobAttr:
        return self.put(id, struct.pack(">B", value & 0xFF))

    def put_u16(self, id: int, value: int) -> BlobAttr:
        return self.put(id, struct.pack(">H", value & 0xFFFF))

    def put_u32(self, id: int, value: int) -> BlobAttr:
        return self.put(id, struct.pack(">I", value & 0xFFFFFFFF))

    def put_u64(self, id: int, value: int) -> BlobAttr:
        return self.put(id, struct.pack(">Q", value & 0xFFFFFFFFFFFFFFFF))

    put_int8 = put_u8
    put_int16 = put_u16
    put_int32 = put_u32
    put_int64 = put_u64

    def nest_start(self, id: int) -> int:
        """Open a nested container; return a cookie for :meth:`nest_end`."""
        cookie = self._head
        self._head = self._new(id, 0)
        return cookie

    def nest_end(self, cookie: int) -> None:
        """Close the container opened by the matching :meth:`nest_start`."""
        payload = self._raw_len(self._head) - HEADER_LEN
        self._set_raw_len(cookie, self._pad_len(cookie) + payload)
        self._head = cookie

    @contextmanager
    def nested(self, id: int) -> Iterator["BlobBuf"]:
        """Context manager wrapping :meth:`nest_start` and :meth:`nest_end`."""
        cookie = self.nest_start(id)
        try:
            yield self
        finally:
            self.nest_end(cookie)