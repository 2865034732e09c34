import enum
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from token_indexer import db as store
from token_indexer.chain import Log
from token_indexer.config import (
    ERC20_TRANSFER_TOPIC0, ERC1155_TRANSFER_BATCH, ERC1155_TRANSFER_SINGLE,
)
from token_indexer.helpers import decode_1155_data, strip_0x, topic_to_addr, topic_to_u256
from token_indexer.models import ERC20Transfer, ERC721Transfer, ERC1155Transfer

logger = logging.getLogger(__name__)


class EventKind(enum.Enum):
    ERC20_TRANSFER  = "erc20_transfer"
    ERC721_TRANSFER = "erc721_transfer"
    ERC1155_SINGLE  = "erc1155_single"
    ERC1155_BATCH   = "erc1155_batch"


@dataclass(frozen=True)
class Decoded:
    """A best-effort record plus the names of fields that fell back to a sentinel."""
    record:    object
    defaulted: Tuple[str, ...] = ()


@dataclass
class Transfers:
    erc20:   List[ERC20Transfer] = field(default_factory=list)
    erc721:  List[ERC721Transfer] = field(default_factory=list)
    erc1155: List[ERC1155Transfer] = field(default_factory=list)
    skipped_batch: int = 0

    def __len__(self):
        return len(self.erc20) + len(self.erc721) + len(self.erc1155)


def _has_data(log: Log) -> bool:
    return strip_0x(log.data or "") != ""


def classify_log(log: Log) -> Optional[EventKind]:
    if not log.topics:
        return None
    topic0 = log.topics[0].lower()
    if topic0 == ERC20_TRANSFER_TOPIC0:
        # ERC-721 indexes tokenId, ERC-20 carries value in data
        return EventKind.ERC20_TRANSFER if _has_data(log) else EventKind.ERC721_TRANSFER
    if topic0 == ERC1155_TRANSFER_SINGLE:
        return EventKind.ERC1155_SINGLE
    if topic0 == ERC1155_TRANSFER_BATCH:
        return EventKind.ERC1155_BATCH
    return None


class _Fields:
    """Reads topics and data words, remembering which ones were missing."""

    def __init__(self, log: Log):
        self.log = log
        self.defaulted: List[str] = []

    def topic(self, index: int, name: str) -> Optional[str]:
        t = self.log.topics[index] if index < len(self.log.topics) else None
        if not t or strip_0x(t) == "":
            self.defaulted.append(name)
            return None
        return t

    def address(self, index: int, name: str) -> str:
        return topic_to_addr(self.topic(index, name))

    def uint_topic(self, index: int, name: str) -> str:
        return str(topic_to_u256(self.topic(index, name)))

    def or_zero(self, value: Optional[int], name: str) -> str:
        if value is None:
            self.defaulted.append(name)
            value = 0
        return str(value)


# ---------- decoders ----------
def decode_erc20(log: Log, ts: int) -> Decoded:
    f = _Fields(log)
    h = strip_0x(log.data or "")
    if h:
        value = str(int(h, 16))
    else:
        f.defaulted.append("value")
        value = "0"
    record = ERC20Transfer(
        tx_hash=log.tx_hash,
        log_index=log.log_index,
        block_number=log.block_number,
        contract=log.address,
        from_=f.address(1, "from"),
        to=f.address(2, "to"),
        value=value,
        ts=ts,
    )
    return Decoded(record, tuple(f.defaulted))


def decode_erc721(log: Log, ts: int) -> Decoded:
    f = _Fields(log)
    record = ERC721Transfer(
        tx_hash=log.tx_hash,
        log_index=log.log_index,
        block_number=log.block_number,
        contract=log.address,
        from_=f.address(1, "from"),
        to=f.address(2, "to"),
        token_id=f.uint_topic(3, "token_id"),
        ts=ts,
    )
    return Decoded(record, tuple(f.defaulted))


def decode_erc1155_single(log: Log, ts: int) -> Decoded:
    f = _Fields(log)
    token_id, value = decode_1155_data(log.data)
    record = ERC1155Transfer(
        tx_hash=log.tx_hash,
        log_index=log.log_index,
        block_number=log.block_number,
        contract=log.address,
        operator=f.address(1, "operator"),
        from_=f.address(2, "from"),
        to=f.address(3, "to"),
        token_id=f.or_zero(token_id, "token_id"),
        value=f.or_zero(value, "value"),
        ts=ts,
    )
    return Decoded(record, tuple(f.defaulted))


DECODERS = {
    EventKind.ERC20_TRANSFER:  decode_erc20,
    EventKind.ERC721_TRANSFER: decode_erc721,
    EventKind.ERC1155_SINGLE:  decode_erc1155_single,
    # TransferBatch carries dynamic uint256[] arrays; recognised but not decoded
    EventKind.ERC1155_BATCH:   None,
}


def decode_log(log: Log, ts: int) -> Tuple[Optional[EventKind], Optional[Decoded]]:
    kind = classify_log(log)
    if kind is None:
        return None, None
    decoder = DECODERS[kind]
    if decoder is None:
        return kind, None
    decoded = decoder(log, ts)
    if decoded.defaulted:
        logger.warning("log %s#%d (block %d): defaulted %s",
                       log.tx_hash, log.log_index, log.block_number, ",".join(decoded.defaulted))
    return kind, decoded


# ---------- batch path ----------
def partition_logs(logs: List[Log], timestamps: Dict[int, int]) -> Transfers:
    """Decode logs into per-table batches. Every log's block must be in timestamps."""
    out = Transfers()
    for log in logs:
        ts = timestamps[log.block_number]
        kind, decoded = decode_log(log, ts)
        if kind is EventKind.ERC1155_BATCH:
            out.skipped_batch += 1
        if decoded is None:
            continue
        if kind is EventKind.ERC20_TRANSFER:
            out.erc20.append(decoded.record)
        elif kind is EventKind.ERC721_TRANSFER:
            out.erc721.append(decoded.record)
        elif kind is EventKind.ERC1155_SINGLE:
            out.erc1155.append(decoded.record)
    return out


def persist_transfers(conn, transfers: Transfers) -> Dict[str, int]:
    return {
        "erc20":   store.insert_erc20_transfers(conn, transfers.erc20),
        "erc721":  store.insert_erc721_transfers(conn, transfers.erc721),
        "erc1155": store.insert_erc1155_transfers(conn, transfers.erc1155),
    }


# ---------- single-log path ----------
def index_log(conn, log: Log, ts: int) -> Optional[EventKind]:
    kind, decoded = decode_log(log, ts)
    if decoded is not None:
        store.insert_transfer(conn, decoded.record)
    return kind
