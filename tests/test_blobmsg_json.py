import json

import pytest

from ubox import blobmsg
from ubox.blobmsg import BlobmsgBuf, BlobmsgPolicy, BlobmsgType
from ubox.blobmsg_json import (
    BlobmsgJsonError,
    add_json_element,
    add_json_from_file,
    add_json_from_string,
    add_object,
    format_json,
    format_json_value,
)


def _load(text):
    buf = BlobmsgBuf()
    add_json_from_string(buf, text)
    return buf


def test_simple_round_trip():
    text = '{"a":1,"b":"x"}'
    assert format_json(_load(text).head) == text


def test_nested_round_trip():
    text = '{"t":{"k":true},"l":[1,2,null],"f":false}'
    assert format_json(_load(text).head) == text


def test_round_trip_preserves_value():
    doc = {"s": "str", "n": -3, "big": 5000000000, "arr": [{"x": [1, "y"]}, None]}
    buf = BlobmsgBuf()
    add_object(buf, doc)
    assert json.loads(format_json(buf.head)) == doc


def test_integer_types():
    buf = _load('{"small":-5,"big":5000000000}')
    small, big = blobmsg.parse(
        [BlobmsgPolicy("small", BlobmsgType.UNSPEC), BlobmsgPolicy("big", BlobmsgType.UNSPEC)],
        buf.head,
    )
    assert small.id == BlobmsgType.INT32
    assert blobmsg.cast_s64(small) == -5
    assert big.id == BlobmsgType.INT64
    assert blobmsg.get_u64(big) == 5000000000


def test_double_format():
    assert format_json(_load('{"d":1.5}').head) == '{"d":1.500000}'


def test_string_escapes_round_trip():
    text = '{"s":"a\\"b\\n\\\\c\\u0001"}'
    assert format_json(_load(text).head) == text
    assert json.loads(format_json(_load(text).head)) == json.loads(text)


def test_indent():
    assert format_json(_load('{"a":1}').head, True, 0) == '{\n\t"a": 1\n}'


def test_indent_parses_back():
    doc = {"a": [1, 2], "b": {"c": "d"}}
    out = format_json(_load(json.dumps(doc)).head, True, 0)
    assert "\n\t" in out
    assert json.loads(out) == doc


def test_empty_root():
    assert format_json(BlobmsgBuf().head) == "{}"


def test_format_value_and_element():
    buf = BlobmsgBuf()
    attr = buf.add_string("s", "x")
    assert format_json_value(attr) == '"x"'
    assert format_json(attr, list=False) == '"s":"x"'


def test_custom_format():
    buf = _load('{"a":1,"b":"y"}')

    def fmt(attr):
        return "X" if attr.id == BlobmsgType.INT32 else None

    assert format_json(buf.head, custom_format=fmt) == '{"a":X,"b":"y"}'


def test_array_element():
    buf = BlobmsgBuf()
    add_json_element(buf, "l", [True, "z"])
    attr = blobmsg.parse([BlobmsgPolicy("l", BlobmsgType.ARRAY)], buf.head)[0]
    assert json.loads(format_json_value(attr)) == [True, "z"]


def test_not_an_object():
    with pytest.raises(BlobmsgJsonError):
        add_json_from_string(BlobmsgBuf(), "[1, 2]")


def test_invalid_json():
    with pytest.raises(BlobmsgJsonError):
        add_json_from_string(BlobmsgBuf(), "{nope")


def test_unsupported_value():
    with pytest.raises(BlobmsgJsonError):
        add_json_element(BlobmsgBuf(), "x", object())


def test_from_file(tmp_path):
    path = tmp_path / "doc.json"
    path.write_text('{"k":"v"}')
    buf = BlobmsgBuf()
    add_json_from_file(buf, path)
    assert format_json(buf.head) == '{"k":"v"}'


def test_missing_file(tmp_path):
    with pytest.raises(BlobmsgJsonError):
        add_json_from_file(BlobmsgBuf(), tmp_path / "missing.json")