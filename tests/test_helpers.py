from hexbytes import HexBytes

from token_indexer.config import ZERO_ADDR
from token_indexer.helpers import (
    data_word, decode_1155_data, hex_to_int, is_address, normalize_address,
    to_hex, topic_to_addr, topic_to_u256,
)


def test_topic_to_addr_takes_low_20_bytes():
    topic = "0x000000000000000000000000AbCdEf0123456789aBcDeF0123456789AbCdEf01"
    assert topic_to_addr(topic) == "0xabcdef0123456789abcdef0123456789abcdef01"


def test_topic_to_addr_missing_topic_is_zero_address():
    assert topic_to_addr(None) == ZERO_ADDR
    assert topic_to_addr("") == ZERO_ADDR


def test_topic_to_u256():
    assert topic_to_u256("0x" + "0" * 63 + "7") == 7
    assert topic_to_u256(None) == 0
    assert topic_to_u256("0x" + "f" * 64) == 2 ** 256 - 1


def test_decode_1155_data_splits_words():
    data = "0x" + format(5, "064x") + format(2 ** 200, "064x")
    assert decode_1155_data(data) == (5, 2 ** 200)


def test_decode_1155_data_short_payload():
    assert decode_1155_data("0x" + format(9, "064x")) == (9, None)
    assert decode_1155_data("0x") == (None, None)
    assert data_word("0x1234", 0) is None


def test_to_hex_and_hex_to_int():
    assert to_hex(HexBytes("0xDEAD")) == "0xdead"
    assert to_hex(b"\x01\x02") == "0x0102"
    assert to_hex(255) == "0xff"
    assert to_hex(None) is None
    assert to_hex("ABC") == "0xabc"
    assert hex_to_int("0x10") == 16
    assert hex_to_int("0x") == 0
    assert hex_to_int(b"\x01\x00") == 256
    assert hex_to_int("42") == 42


def test_address_checks():
    assert is_address("0x" + "a" * 40)
    assert not is_address("0x" + "a" * 39)
    assert not is_address("a" * 40)
    assert not is_address(None)
    assert normalize_address("0x" + "A" * 40) == "0x" + "a" * 40
    assert normalize_address("nope") is None
    assert normalize_address(b"\x11" * 20) == "0x" + "11" * 20
