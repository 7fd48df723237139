import pytest

from ubox.b64 import Base64Error, decode, encode


def test_encode_pins_padding_forms():
    assert encode(b"f") == "Zg=="
    assert encode(b"fo") == "Zm8="
    assert encode(b"foobar") == "Zm9vYmFy"


@pytest.mark.parametrize("length", range(0, 20))
def test_round_trip(length):
    data = bytes((i * 37 + 11) % 256 for i in range(length))
    assert decode(encode(data)) == data


def test_decode_empty():
    assert decode("") == b""


def test_decode_accepts_bytes():
    assert decode(encode(b"hello").encode("ascii")) == b"hello"


def test_whitespace_is_skipped_anywhere():
    text = encode(b"foobar")
    spaced = " ".join(text[:3]) + "\n\t" + text[3:] + "  "
    assert decode(spaced) == b"foobar"


def test_whitespace_between_and_after_padding():
    assert decode("Zg= = \n") == decode("Zg==")


def test_all_byte_values_round_trip():
    data = bytes(range(256))
    assert decode(encode(data)) == data


@pytest.mark.parametrize(
    "bad",
    [
        "Zm9v!",   # character outside the alphabet
        "Zg",      # truncated, no padding
        "Zg=",     # single pad where two are needed
        "Zg=x",    # second pad missing
        "=",       # pad in first position
        "Z===",    # pad in second position
        "Zm9v=",   # pad after a complete quantum
        "Zg==x",   # garbage after padding
        "Zm8=a",   # garbage after single pad
        "Zh==",    # non-zero left-over bits
        "Zm9=",    # non-zero left-over bits
    ],
)
def test_invalid_input_raises(bad):
    with pytest.raises(Base64Error):
        decode(bad)


def test_error_is_value_error():
    with pytest.raises(ValueError):
        decode("@@@@")