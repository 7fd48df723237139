"""Shell helpers for JSON.

:func:`to_shell` turns a JSON object into a series of shell commands
(``json_add_string 'key' 'value';`` and so on); :func:`from_env` rebuilds
a JSON object from the variables those commands leave in the
environment.
"""

from __future__ import annotations

import json
import math
import os
import re
import sys
from pathlib import Path
from typing import Any, Iterator, Mapping, Optional, Sequence, TextIO, Union

from ubox.blobmsg import BlobmsgBuf
from ubox.blobmsg_json import BlobmsgJsonError, add_json_from_string, format_json

__all__ = ["JshnError", "to_shell", "from_env", "main"]

PROG = "jshn"
USAGE = "Usage: %s [-n] [-i] -r <message>|-R <file>|-o <file>|-p <prefix>|-w"

_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1
_INTEGER = re.compile(r"[ \t\n\v\f\r]*([+-]?\d+)")
_FLOAT = re.compile(
    r"[ \t\n\v\f\r]*([+-]?(?:\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?"
    r"|inf(?:inity)?|nan))",
    re.IGNORECASE,
)
_JSON_C_ESCAPES = {
    "\b": "\\b",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\f": "\\f",
    '"': '\\"',
    "\\": "\\\\",
    "/": "\\/",
}


class JshnError(Exception):
    """Raised when JSON input or environment data cannot be processed."""


# ----------------------------------------------------------------------
# JSON to shell


def _type_name(value: Any) -> str:
    if isinstance(value, dict):
        return "object"
    if isinstance(value, list):
        return "array"
    if isinstance(value, str):
        return "string"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "int"
    if isinstance(value, float):
        return "double"
    if value is None:
        return "null"
    raise JshnError(f"unsupported JSON value of type {type(value).__name__}")


def _shell_key(key: str) -> str:
    return "".join(
        chr(b) if b < 0x80 and chr(b).isalnum() else "_" for b in key.encode("utf-8")
    )


def _emit(lines: list[str], key: str, value: Any) -> None:
    kind = _type_name(value)
    head = f"json_add_{kind} '{_shell_key(key)}"

    if kind == "object":
        lines.append(head + "';\n")
        for child_key, child in value.items():
            _emit(lines, child_key, child)
        lines.append("json_close_object;\n")
    elif kind == "array":
        lines.append(head + "';\n")
        for index, child in enumerate(value):
            _emit(lines, str(index), child)
        lines.append("json_close_array;\n")
    elif kind == "string":
        lines.append(head + "' '" + value.replace("'", "'\\''") + "';\n")
    elif kind == "boolean":
        lines.append(f"{head}' {int(value)};\n")
    elif kind == "int":
        lines.append(f"{head}' {max(_INT64_MIN, min(_INT64_MAX, value))};\n")
    elif kind == "double":
        lines.append(f"{head}' {value:f};\n")
    else:
        lines.append(head + "';\n")


def to_shell(text: Union[str, bytes]) -> str:
    """Translate a JSON object into ``json_*`` shell commands."""
    try:
        obj = json.loads(text)
    except ValueError as exc:
        raise JshnError("Failed to parse message data") from exc
    if not isinstance(obj, dict):
        raise JshnError("Failed to parse message data")
    lines = ["json_init;\n"]
    for key, value in obj.items():
        _emit(lines, key, value)
    return "".join(lines)


# ----------------------------------------------------------------------
# environment to JSON


def _atoll(text: str) -> int:
    match = _INTEGER.match(text)
    if match is None:
        return 0
    return max(_INT64_MIN, min(_INT64_MAX, int(match.group(1))))


def _strtod(text: str) -> float:
    match = _FLOAT.match(text)
    if match is None:
        return 0.0
    return float(match.group(1))


def _json_c_string(text: str) -> str:
    out = []
    for ch in text:
        escaped = _JSON_C_ESCAPES.get(ch)
        if escaped is not None:
            out.append(escaped)
        elif ch < " ":
            out.append("\\u%04x" % ord(ch))
        else:
            out.append(ch)
    return '"' + "".join(out) + '"'


def _json_c_double(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    text = "%.17g" % value
    if all(ch.isdigit() or ch == "-" for ch in text):
        text += ".0"
    return text


def _json_c(value: Any) -> str:
    """Serialise like the spaced output of the JSON library the shell side expects."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _json_c_double(value)
    if isinstance(value, str):
        return _json_c_string(value)
    if isinstance(value, list):
        if not value:
            return "[ ]"
        return "[ " + ", ".join(_json_c(item) for item in value) + " ]"
    if not value:
        return "{ }"
    members = ", ".join(f"{_json_c_string(k)}: {_json_c(v)}" for k, v in value.items())
    return "{ " + members + " }"


class _Environment:
    def __init__(self, environ: Mapping[str, str], prefix: str) -> None:
        self.environ = environ
        self.prefix = prefix

    def get(self, name: str) -> Optional[str]:
        return self.environ.get(self.prefix + name)

    def add_objects(self, container: Any, prefix: str, array: bool) -> Any:
        keys = self.get(f"K_{prefix}")
        if keys is None:
            return container
        for key in keys.split(" "):
            if key:
                self.add_var(container, array, prefix, key)
        return container

    def add_var(self, container: Any, array: bool, prefix: str, name: str) -> None:
        var = self.get(f"{prefix}_{name}")
        kind = self.get(f"T_{prefix}_{name}")
        alias = self.get(f"N_{prefix}_{name}")
        if alias is not None:
            name = alias
        if var is None or kind is None:
            return

        if kind == "array":
            value: Any = self.add_objects([], var, True)
        elif kind == "object":
            value = self.add_objects({}, var, False)
        elif kind == "string":
            value = var
        elif kind == "int":
            value = _atoll(var)
        elif kind == "double":
            value = _strtod(var)
        elif kind == "boolean":
            value = _atoll(var) != 0
        elif kind == "null":
            value = None
        else:
            return

        if array:
            container.append(value)
        else:
            container[name] = value


def from_env(environ: Optional[Mapping[str, str]] = None, prefix: str = "",
             indent: bool = False) -> str:
    """Build JSON text from the variables describing the ``J_V`` object.

    Variable names are looked up with ``prefix`` in front.  With
    ``indent`` the result is written with tabs and newlines.
    """
    env = _Environment(os.environ if environ is None else environ, prefix)
    text = _json_c(env.add_objects({}, "J_V", False))
    if indent:
        buf = BlobmsgBuf()
        try:
            add_json_from_string(buf, text)
        except BlobmsgJsonError as exc:
            raise JshnError("cannot format JSON data") from exc
        formatted = format_json(buf.head, True, 0)
        if formatted is None:
            raise JshnError("cannot format JSON data")
        text = formatted
    return text


# ----------------------------------------------------------------------
# command line

_OPTIONS = {"p": True, "n": False, "i": False, "r": True, "R": True, "o": True, "w": False}


def _getopt(args: Sequence[str]) -> Iterator[tuple[str, Optional[str]]]:
    i = 0
    while i < len(args):
        arg = args[i]
        i += 1
        if arg == "--":
            return
        if not arg.startswith("-") or arg == "-":
            continue
        j = 1
        while j < len(arg):
            ch = arg[j]
            j += 1
            takes_arg = _OPTIONS.get(ch)
            if takes_arg is None:
                print(f"{PROG}: invalid option -- '{ch}'", file=sys.stderr)
                yield "?", None
                return
            if not takes_arg:
                yield ch, None
                continue
            if j < len(arg):
                value = arg[j:]
            elif i < len(args):
                value = args[i]
                i += 1
            else:
                print(f"{PROG}: option requires an argument -- '{ch}'", file=sys.stderr)
                yield "?", None
                return
            yield ch, value
            break


def _print_shell(text: Union[str, bytes]) -> int:
    try:
        out = to_shell(text)
    except JshnError as exc:
        print(exc, file=sys.stderr)
        return 1
    sys.stdout.write(out)
    sys.stdout.flush()
    return 0


def _print_shell_file(path: str) -> int:
    try:
        data = Path(path).read_bytes()
    except OSError:
        print(f"Error opening {path}", file=sys.stderr)
        return 3
    return _print_shell(data.split(b"\0", 1)[0])


def _write_json(stream: TextIO, prefix: str, no_newline: bool, indent: bool) -> int:
    try:
        text = from_env(None, prefix, indent)
    except JshnError:
        return -1
    stream.write(text + ("" if no_newline else "\n"))
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Command line entry point; returns the exit status."""
    args = list(sys.argv[1:] if argv is None else argv)
    prefix = ""
    no_newline = False
    indent = False

    for opt, value in _getopt(args):
        if opt == "p":
            prefix = value or ""
        elif opt == "r":
            return _print_shell(value or "")
        elif opt == "R":
            return _print_shell_file(value or "")
        elif opt == "w":
            return _write_json(sys.stdout, prefix, no_newline, indent)
        elif opt == "o":
            try:
                stream = open(value or "", "w", encoding="utf-8")
            except OSError:
                print(f"Error opening {value}", file=sys.stderr)
                return 3
            with stream:
                return _write_json(stream, prefix, no_newline, indent)
        elif opt == "n":
            no_newline = True
        elif opt == "i":
            indent = True
        else:
            break

    print(USAGE % PROG, file=sys.stderr)
    return 2


if __name__ == "__main__":
    sys.exit(main())