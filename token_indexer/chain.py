import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Sequence

from web3 import AsyncHTTPProvider, AsyncWeb3

from token_indexer.config import TRANSFER_TOPICS
from token_indexer.errors import RpcError
from token_indexer.helpers import hex_to_int, normalize_address, to_hex

logger = logging.getLogger(__name__)


@dataclass
class Transaction:
    hash:  str
    from_: str
    to:    Optional[str]
    nonce: int
    input: str


@dataclass
class Block:
    number:       int
    timestamp:    int
    transactions: List[Transaction] = field(default_factory=list)


@dataclass
class Log:
    address:      str
    topics:       List[str]
    data:         str
    block_number: int
    tx_hash:      str
    log_index:    int


def _tx_from_rpc(tx) -> Transaction:
    return Transaction(
        hash=to_hex(tx["hash"]),
        from_=normalize_address(tx["from"]),
        to=normalize_address(tx.get("to")) if tx.get("to") else None,
        nonce=int(tx["nonce"]),
        input=to_hex(tx.get("input") or b""),
    )


def block_from_rpc(b, full_transactions: bool) -> Block:
    txs = []
    if full_transactions:
        txs = [_tx_from_rpc(tx) for tx in b.get("transactions") or []]
    return Block(number=int(b["number"]), timestamp=int(b["timestamp"]), transactions=txs)


def log_from_rpc(lg) -> Log:
    return Log(
        address=normalize_address(lg["address"]),
        topics=[to_hex(t) for t in lg.get("topics") or []],
        data=to_hex(lg.get("data") or b""),
        block_number=hex_to_int(lg["blockNumber"]),
        tx_hash=to_hex(lg["transactionHash"]),
        log_index=hex_to_int(lg["logIndex"]),
    )


async def gather_all(aws):
    """
    asyncio.gather that lets every call settle before re-raising the first
    failure, so nothing from a failed batch is still in flight afterwards.
    """
    tasks = [asyncio.ensure_future(a) for a in aws]
    results = await asyncio.gather(*tasks, return_exceptions=True)
    for r in results:
        if isinstance(r, BaseException):
            raise r
    return results


class ChainReader:
    """Thin wrapper over one RPC endpoint. Every failure surfaces as RpcError."""

    def __init__(self, w3: AsyncWeb3):
        self.w3 = w3

    @classmethod
    def from_url(cls, rpc_url: str) -> "ChainReader":
        return cls(AsyncWeb3(AsyncHTTPProvider(rpc_url)))

    async def block_number(self) -> int:
        try:
            return int(await self.w3.eth.block_number)
        except Exception as e:
            raise RpcError("eth_blockNumber", str(e)) from e

    async def get_block(self, number: int, full_transactions: bool = False) -> Block:
        try:
            b = await self.w3.eth.get_block(block_identifier=number, full_transactions=full_transactions)
        except Exception as e:
            raise RpcError("eth_getBlockByNumber", f"block {number}: {e}") from e
        return block_from_rpc(b, full_transactions)

    async def get_logs(self, from_block: int, to_block: int,
                       topics: Sequence[str] = TRANSFER_TOPICS) -> List[Log]:
        try:
            logs = await self.w3.eth.get_logs({
                "fromBlock": from_block,
                "toBlock": to_block,
                "topics": [list(topics)],
            })
        except Exception as e:
            raise RpcError("eth_getLogs", f"blocks {from_block}-{to_block}: {e}") from e
        return [log_from_rpc(lg) for lg in logs]

    async def call(self, address: str, data: bytes) -> bytes:
        try:
            out = await self.w3.eth.call({
                "to": AsyncWeb3.to_checksum_address(address),
                "data": to_hex(data),
            }, "latest")
        except Exception as e:
            raise RpcError("eth_call", f"{address}: {e}") from e
        return bytes(out)

    async def watch_new_blocks(self,
                               on_block: Callable[[Block], Awaitable[None]],
                               on_error: Callable[[Exception], None],
                               poll_interval: float = 1.0):
        """
        Poll the head and hand every new block header to on_block, in order,
        one at a time. Starts at the head seen on the first poll and never
        returns; cancel the task to stop it.
        """
        last_seen = None
        while True:
            try:
                head = await self.block_number()
                if last_seen is None:
                    last_seen = head - 1
                    logger.info("watching new blocks from %d", head)
                while last_seen < head:
                    header = await self.get_block(last_seen + 1)
                    last_seen = header.number
                    await on_block(header)
            except RpcError as e:
                on_error(e)
            await asyncio.sleep(poll_interval)
