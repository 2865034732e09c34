"""
Token standard detection by capability probing.

ERC-165 introspection is tried first (ERC-721, then ERC-1155); contracts that
do not implement it fall back to a zero-argument ``totalSupply()`` read, which
marks them as ERC-20. The fallback is a heuristic: any contract exposing a
compatible ``totalSupply`` is reported as ERC-20.

Each probe yields a tri-state ``ProbeResult``. A probe that reverts, fails at
the transport level or returns undecodable data is ``INDETERMINATE``, and the
resolution policy treats that the same as ``NOT_SUPPORTED``.
"""
import enum
import logging
from typing import Awaitable, Callable, Iterable, List, Optional, Tuple

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from web3 import Web3

from token_indexer.config import ERC721_INTERFACE_ID, ERC1155_INTERFACE_ID
from token_indexer.errors import RpcError
from token_indexer.helpers import normalize_address

logger = logging.getLogger(__name__)

SUPPORTS_INTERFACE_SELECTOR = Web3.keccak(text="supportsInterface(bytes4)")[:4]
TOTAL_SUPPLY_SELECTOR       = Web3.keccak(text="totalSupply()")[:4]


class TokenStandard(str, enum.Enum):
    ERC20   = "ERC20"
    ERC721  = "ERC721"
    ERC1155 = "ERC1155"


class ProbeResult(enum.Enum):
    SUPPORTED     = "supported"
    NOT_SUPPORTED = "not_supported"
    INDETERMINATE = "indeterminate"


Probe = Callable[[object, str], Awaitable[ProbeResult]]


def supports_interface(interface_id: bytes) -> Probe:
    calldata = SUPPORTS_INTERFACE_SELECTOR + encode(["bytes4"], [interface_id])

    async def probe(reader, address: str) -> ProbeResult:
        try:
            out = await reader.call(address, calldata)
            (supported,) = decode(["bool"], out)
        except (RpcError, DecodingError) as e:
            logger.debug("supportsInterface(0x%s) on %s: %s", interface_id.hex(), address, e)
            return ProbeResult.INDETERMINATE
        return ProbeResult.SUPPORTED if supported else ProbeResult.NOT_SUPPORTED

    probe.__name__ = f"supports_interface_{interface_id.hex()}"
    return probe


async def has_total_supply(reader, address: str) -> ProbeResult:
    try:
        out = await reader.call(address, TOTAL_SUPPLY_SELECTOR)
        decode(["uint256"], out)
    except (RpcError, DecodingError) as e:
        logger.debug("totalSupply() on %s: %s", address, e)
        return ProbeResult.INDETERMINATE
    return ProbeResult.SUPPORTED


# first match wins
PROBES: List[Tuple[TokenStandard, Probe]] = [
    (TokenStandard.ERC721,  supports_interface(ERC721_INTERFACE_ID)),
    (TokenStandard.ERC1155, supports_interface(ERC1155_INTERFACE_ID)),
    (TokenStandard.ERC20,   has_total_supply),
]


def resolve(results: Iterable[Tuple[TokenStandard, ProbeResult]]) -> Optional[TokenStandard]:
    for standard, result in results:
        if result is ProbeResult.SUPPORTED:
            return standard
    return None


async def classify(reader, address: str, probes=PROBES) -> Optional[TokenStandard]:
    addr = normalize_address(address)
    if addr is None:
        return None
    for standard, probe in probes:
        result = await probe(reader, addr)
        if resolve([(standard, result)]) is not None:
            return standard
    return None
