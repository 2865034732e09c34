import re
from typing import Optional, Tuple

from token_indexer.config import ZERO_ADDR

_ADDR_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")

WORD_HEX = 64  # one 32-byte ABI word


# ---------------- helpers ----------------
def to_hex(x):
    if x is None: return None
    if isinstance(x, (bytes, bytearray)): return "0x" + bytes(x).hex()
    if isinstance(x, int): return hex(x)
    s = str(x).lower()
    return s if s.startswith("0x") else "0x" + s


def strip_0x(s: str) -> str:
    return s[2:] if s.startswith(("0x", "0X")) else s


def hex_to_int(x):
    if x is None: return None
    if isinstance(x, int): return x
    if isinstance(x, (bytes, bytearray)): return int.from_bytes(x, "big")
    s = str(x)
    if s.startswith(("0x", "0X")):
        return int(s[2:] or "0", 16)
    return int(s)


def is_address(x) -> bool:
    return isinstance(x, str) and bool(_ADDR_RE.match(x))


def normalize_address(x) -> Optional[str]:
    """Lowercase 0x-prefixed 20-byte hex, or None when x is not an address."""
    if isinstance(x, (bytes, bytearray)) and len(x) == 20:
        x = to_hex(x)
    if not is_address(x):
        return None
    return x.lower()


def topic_to_addr(topic_hex: Optional[str]) -> str:
    # topics are 32-byte values; address is the last 20 bytes
    if not topic_hex:
        return ZERO_ADDR
    h = strip_0x(topic_hex).rjust(40, "0")
    return ("0x" + h[-40:]).lower()


def topic_to_u256(topic_hex: Optional[str]) -> int:
    if not topic_hex:
        return 0
    return int(strip_0x(topic_hex) or "0", 16)


def data_word(data_hex: str, index: int) -> Optional[int]:
    """The index-th 32-byte word of an ABI payload, or None if it is short."""
    h = strip_0x(data_hex or "")
    chunk = h[index * WORD_HEX:(index + 1) * WORD_HEX]
    if len(chunk) < WORD_HEX:
        return None
    return int(chunk, 16)


def decode_1155_data(data_hex: str) -> Tuple[Optional[int], Optional[int]]:
    """
    ERC1155 TransferSingle data = abi.encode(id (uint256), value (uint256))
    Missing words come back as None.
    """
    return data_word(data_hex, 0), data_word(data_hex, 1)
