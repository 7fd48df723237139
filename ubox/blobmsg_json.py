"""Conversion between JSON values and blobmsg attributes.

JSON objects become tables, arrays become arrays, strings, booleans,
integers, doubles and null map onto the matching blobmsg types.  The
formatter writes JSON text back out of a blobmsg container, optionally
indented with tabs.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Union

from ubox import blobmsg
from ubox.blob import BlobAttr, iter_attrs
from ubox.blobmsg import BlobmsgBuf, BlobmsgType

__all__ = [
    "BlobmsgJsonError",
    "add_object",
    "add_json_element",
    "add_json_from_string",
    "add_json_from_file",
    "format_json",
    "format_json_value",
]

CustomFormat = Callable[[BlobAttr], Optional[str]]

_INT32_MIN = -(1 << 31)
_INT32_MAX = (1 << 31) - 1
_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1
_INDENT_CHARS = "\n" + "\t" * 16
_ESCAPES = {
    "\b": "\\b",
    "\n": "\\n",
    "\t": "\\t",
    "\r": "\\r",
    '"': '\\"',
    "\\": "\\\\",
}


class BlobmsgJsonError(ValueError):
    """Raised when JSON input cannot be turned into blobmsg attributes."""


def add_object(buf: BlobmsgBuf, obj: Mapping[str, Any]) -> None:
    """Add every member of a JSON object to ``buf`` as named attributes."""
    for key, value in obj.items():
        add_json_element(buf, key, value)


def add_json_element(buf: BlobmsgBuf, name: Optional[str], value: Any) -> None:
    """Add one JSON value to ``buf`` under ``name``."""
    if isinstance(value, Mapping):
        with buf.table(name):
            add_object(buf, value)
    elif isinstance(value, (list, tuple)):
        with buf.array(name):
            for item in value:
                add_json_element(buf, None, item)
    elif isinstance(value, str):
        buf.add_string(name, value)
    elif isinstance(value, bool):
        buf.add_u8(name, int(value))
    elif isinstance(value, int):
        number = max(_INT64_MIN, min(_INT64_MAX, value))
        if _INT32_MIN <= number <= _INT32_MAX:
            buf.add_u32(name, number)
        else:
            buf.add_u64(name, number)
    elif isinstance(value, float):
        buf.add_double(name, value)
    elif value is None:
        buf.add_field(BlobmsgType.UNSPEC, name, b"")
    else:
        raise BlobmsgJsonError(f"unsupported JSON value of type {type(value).__name__}")


def add_json_from_string(buf: BlobmsgBuf, text: Union[str, bytes]) -> None:
    """Parse a JSON object from text and add its members to ``buf``."""
    try:
        obj = json.loads(text)
    except ValueError as exc:
        raise BlobmsgJsonError("invalid JSON text") from exc
    if not isinstance(obj, dict):
        raise BlobmsgJsonError("JSON text is not an object")
    add_object(buf, obj)


def add_json_from_file(buf: BlobmsgBuf, path: Union[str, Path]) -> None:
    """Parse a JSON object from a file and add its members to ``buf``."""
    try:
        text = Path(path).read_bytes()
    except OSError as exc:
        raise BlobmsgJsonError(f"cannot read {path}") from exc
    add_json_from_string(buf, text)


def _escape(text: str) -> str:
    out = []
    for ch in text:
        escaped = _ESCAPES.get(ch)
        if escaped is not None:
            out.append(escaped)
        elif ch < " ":
            out.append("\\u%04x" % ord(ch))
        else:
            out.append(ch)
    return "".join(out)


class _Writer:
    def __init__(self, indent: Optional[int], custom_format: Optional[CustomFormat]) -> None:
        self.parts: list[str] = []
        self.indent = indent is not None and indent >= 0
        self.level = indent if self.indent else 0
        self.custom_format = custom_format

    def put(self, text: str) -> None:
        if text:
            self.parts.append(text)

    def separator(self) -> None:
        if self.indent:
            self.put(_INDENT_CHARS[:min(self.level + 1, len(_INDENT_CHARS))])

    def string(self, text: str) -> None:
        self.put('"' + _escape(text) + '"')

    def element(self, attr: BlobAttr, without_name: bool) -> None:
        if not blobmsg.check_attr(attr, False):
            return

        if not without_name:
            attr_name = blobmsg.name(attr)
            if attr_name:
                self.string(attr_name)
                self.put(": " if self.indent else ":")

        if self.custom_format is not None:
            custom = self.custom_format(attr)
            if custom is not None:
                self.put(custom)
                return

        kind = attr.id
        payload = blobmsg.data(attr)
        if kind == BlobmsgType.UNSPEC:
            self.put("null")
        elif kind == BlobmsgType.BOOL:
            self.put("true" if payload[0] else "false")
        elif kind == BlobmsgType.INT16:
            self.put(str(int.from_bytes(payload[:2], "big", signed=True)))
        elif kind == BlobmsgType.INT32:
            self.put(str(int.from_bytes(payload[:4], "big", signed=True)))
        elif kind == BlobmsgType.INT64:
            self.put(str(int.from_bytes(payload[:8], "big", signed=True)))
        elif kind == BlobmsgType.DOUBLE:
            self.put("%f" % blobmsg.get_double(attr))
        elif kind == BlobmsgType.STRING:
            self.string(blobmsg.get_string(attr) or "")
        elif kind == BlobmsgType.ARRAY:
            self.list(payload, True)
        elif kind == BlobmsgType.TABLE:
            self.list(payload, False)

    def list(self, payload: bytes, array: bool) -> None:
        self.put("[" if array else "{")
        self.level += 1
        self.separator()
        first = True
        for child in iter_attrs(payload):
            if not first:
                self.put(",")
                self.separator()
            self.element(child, array)
            first = False
        self.level -= 1
        self.separator()
        self.put("]" if array else "}")

    def result(self, attr: BlobAttr) -> Optional[str]:
        text = "".join(self.parts)
        if not text and attr.length == 0:
            return None
        return text


def format_json(attr: BlobAttr, list: bool = True, indent: Optional[int] = None,
                custom_format: Optional[CustomFormat] = None) -> Optional[str]:
    """Format ``attr`` as JSON text.

    With ``list`` the content of the container is written as an object
    (or an array, for an array attribute); otherwise the attribute itself
    is written with its name.  ``indent`` of None or below zero gives
    compact output, otherwise it is the starting tab depth.
    ``custom_format`` may return replacement text for any value.
    """
    writer = _Writer(indent, custom_format)
    if list:
        array = attr.extended and attr.id == BlobmsgType.ARRAY
        writer.list(blobmsg.data(attr), array)
    else:
        writer.element(attr, False)
    return writer.result(attr)


def format_json_value(attr: BlobAttr, indent: Optional[int] = None,
                      custom_format: Optional[CustomFormat] = None) -> Optional[str]:
    """Format the value of ``attr`` as JSON text, without its name."""
    writer = _Writer(indent, custom_format)
    writer.element(attr, True)
    return writer.result(attr)