import pytest

from ubox.blob import (
    BlobAttr,
    BlobAttrInfo,
    BlobBuf,
    BlobType,
    blobcmp,
    check_type,
    iter_attrs,
    parse,
    parse_untrusted,
)


def test_empty_buffer_wire_bytes():
    buf = BlobBuf()
    assert bytes(buf.head) == b"\x00\x00\x00\x04"
    assert buf.head.length == 0


def test_root_id():
    assert BlobBuf(2).head.id == 2


def test_put_u32_wire_bytes():
    buf = BlobBuf()
    buf.put_u32(1, 0x01020304)
    assert bytes(buf.head) == (
        b"\x00\x00\x00\x0c" b"\x01\x00\x00\x08" b"\x01\x02\x03\x04"
    )


def test_put_string_is_padded():
    buf = BlobBuf()
    attr = buf.put_string(3, "ab")
    assert bytes(attr) == b"\x03\x00\x00\x07ab\x00\x00"
    assert attr.get_string() == "ab"
    assert attr.raw_len == 7
    assert attr.pad_len % 4 == 0


def test_integer_round_trips():
    buf = BlobBuf()
    a8 = buf.put_u8(4, -1)
    a16 = buf.put_u16(5, -2)
    a32 = buf.put_u32(6, 123456)
    a64 = buf.put_u64(7, -5)
    assert a8.get_u8() == 255
    assert a8.get_int8() == -1
    assert a16.get_int16() == -2
    assert a32.get_u32() == 123456
    assert a32.get_int32() == 123456
    assert a64.get_int64() == -5
    assert a64.get_u64() == (1 << 64) - 5


def test_children_keep_order():
    buf = BlobBuf()
    buf.put_u8(1, 10)
    buf.put_string(2, "hello")
    buf.put_u16(3, 300)
    kids = list(buf.head.children())
    assert [k.id for k in kids] == [1, 2, 3]
    assert kids[1].get_string() == "hello"
    assert kids[2].get_u16() == 300
    assert buf.head.length == sum(k.pad_len for k in kids)


def test_nested_container():
    buf = BlobBuf()
    with buf.nested(1):
        buf.put_u8(4, 7)
    buf.put_u8(2, 3)
    root = buf.head
    assert root.id == 0
    kids = list(root.children())
    assert [k.id for k in kids] == [1, 2]
    inner = list(kids[0].children())
    assert len(inner) == 1
    assert inner[0].get_u8() == 7
    assert root.length == sum(k.pad_len for k in kids)


def test_nest_start_end_cookie():
    buf = BlobBuf()
    cookie = buf.nest_start(5)
    assert buf.head.id == 5
    buf.put_string(3, "x")
    buf.nest_end(cookie)
    assert buf.head.id == 0
    (table,) = list(buf.head.children())
    assert list(table.children())[0].get_string() == "x"


def test_check_type():
    assert check_type(b"ab\0", BlobType.STRING) is True
    assert check_type(b"ab", BlobType.STRING) is False
    assert check_type(b"", BlobType.STRING) is False
    assert check_type(b"\0\0\0\0", BlobType.INT32) is True
    assert check_type(b"\0\0\0", BlobType.INT32) is False
    assert check_type(b"\0" * 9, BlobType.INT64) is False
    assert check_type(b"\0" * 9, BlobType.DOUBLE) is True
    assert check_type(b"", BlobType.BINARY) is True
    assert check_type(b"", BlobType.LAST) is False


def test_parse_with_policy():
    buf = BlobBuf()
    buf.put_string(3, "x")
    buf.put_u16(4, 1)
    buf.put_u8(2, 9)
    buf.put_u8(6, 1)
    info = [BlobAttrInfo() for _ in range(5)]
    info[3] = BlobAttrInfo(type=BlobType.STRING)
    info[4] = BlobAttrInfo(type=BlobType.INT8)
    table = parse(buf.head, info, 5)
    assert len(table) == 5
    assert table[3].get_string() == "x"
    assert table[4] is None
    assert table[2].get_u8() == 9
    assert table[0] is None


def test_parse_last_wins():
    buf = BlobBuf()
    buf.put_u8(2, 1)
    buf.put_u8(2, 2)
    table = parse(buf.head, None, 3)
    assert table[2].get_u8() == 2


def test_parse_validate_and_minlen():
    buf = BlobBuf()
    buf.put_u8(1, 9)
    buf.put_u8(2, 1)
    keep_small = BlobAttrInfo(validate=lambda rule, attr: attr.get_u8() < 5)
    table = parse(buf.head, [None, keep_small, keep_small])
    assert table[1] is None
    assert table[2].get_u8() == 1
    table = parse(buf.head, [None, BlobAttrInfo(minlen=8), None])
    assert table[1] is None
    assert table[2].get_u8() == 1


def test_parse_untrusted():
    buf = BlobBuf()
    buf.put_u8(2, 4)
    raw = bytes(buf.head)
    assert parse_untrusted(raw[:-4], None, 3) == [None, None, None]
    assert parse_untrusted(b"\x00", None, 3) == [None, None, None]
    table = parse_untrusted(raw, None, 3)
    assert table[2].get_u8() == 4


def test_attr_equality_and_bytes_round_trip():
    buf = BlobBuf()
    attr = buf.put_string(3, "value")
    copy = BlobAttr(bytes(attr))
    assert copy == attr
    assert hash(copy) == hash(attr)
    other = BlobBuf().put_string(3, "other")
    assert not (other == attr)


def test_blobcmp():
    a = BlobBuf().put_string(3, "abc")
    b = BlobBuf().put_string(3, "abd")
    assert blobcmp(a, b) < 0
    assert blobcmp(b, a) > 0
    assert blobcmp(a, bytes(a)) == 0


def test_put_raw_copies_attribute():
    src = BlobBuf()
    attr = src.put_string(3, "copied")
    dst = BlobBuf()
    put = dst.put_raw(attr)
    assert put == attr
    kids = list(dst.head.children())
    assert kids == [attr]


def test_short_raw_rejected():
    with pytest.raises(ValueError):
        BlobAttr(b"\x00\x00")
    with pytest.raises(ValueError):
        BlobBuf().put_raw(b"\x00")


def test_getter_on_short_payload():
    attr = BlobBuf().put_u8(1, 1)
    with pytest.raises(ValueError):
        attr.get_u32()


def test_iter_attrs_stops_on_bad_length():
    assert list(iter_attrs(b"\x00\x00\x00\x00")) == []
    good = bytes(BlobBuf().put_u8(1, 5))
    assert [a.get_u8() for a in iter_attrs(good + b"\x00\x00")] == [5]


def test_not_extended_by_default():
    assert BlobBuf().put_u8(1, 1).extended is False


def test_reset_clears_content():
    buf = BlobBuf()
    buf.put_u8(1, 1)
    buf.reset(3)
    assert buf.head.id == 3
    assert list(buf.head.children()) == []