from ubox.blob import BlobBuf
from ubox.kvlist import KvList, blob_len, strlen


def test_strlen_counts_terminator():
    assert strlen(b"hello") == len(b"hello") + 1
    assert strlen("ab\0cd") == 3


def test_set_get_string_keeps_terminator():
    kv = KvList()
    kv.set("a", b"hello")
    assert kv.get("a") == b"hello\0"


def test_set_truncates_at_nul():
    kv = KvList(strlen)
    kv.set("a", b"ab\0cd")
    assert kv.get("a") == b"ab\0"


def test_get_missing():
    kv = KvList()
    assert kv.get("missing") is None
    assert "missing" not in kv


def test_set_replaces_value():
    kv = KvList()
    kv.set("k", "one")
    kv.set("k", "two")
    assert len(kv) == 1
    assert kv.get("k") == b"two\0"


def test_delete():
    kv = KvList()
    kv.set("k", "v")
    assert kv.delete("k") is True
    assert kv.delete("k") is False
    assert len(kv) == 0


def test_iteration_is_sorted():
    kv = KvList()
    for name in ["zeta", "alpha", "mid"]:
        kv.set(name, name)
    assert list(kv) == ["alpha", "mid", "zeta"]
    assert [v for _, v in kv.items()] == [b"alpha\0", b"mid\0", b"zeta\0"]


def test_blob_values():
    attr = BlobBuf().put_string(3, "abcd")
    assert blob_len(attr) == attr.pad_len
    assert blob_len(bytes(attr)) == attr.pad_len
    kv = KvList(blob_len)
    kv.set("x", attr)
    assert kv.get("x") == bytes(attr)


def test_clear():
    kv = KvList()
    kv.set("a", "1")
    kv.set("b", "2")
    kv.clear()
    assert len(kv) == 0
    assert list(kv) == []
    assert kv.get("a") is None