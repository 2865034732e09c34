import enum
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Tuple

from token_indexer import db as store
from token_indexer.chain import gather_all
from token_indexer.config import DEFAULT_BATCH_SIZE, TRANSFER_TOPICS
from token_indexer.deployments import batch_index_deployments, find_deployments
from token_indexer.events import partition_logs, persist_transfers

logger = logging.getLogger(__name__)


class ScanState(enum.Enum):
    IDLE       = "idle"
    WINDOWING  = "windowing"
    FETCHING   = "fetching"
    DETECTING  = "detecting"
    DECODING   = "decoding"
    PERSISTING = "persisting"
    DONE       = "done"


@dataclass
class WindowResult:
    from_block:  int
    to_block:    int
    blocks:      int = 0
    candidates:  int = 0
    deployments: int = 0
    logs:        int = 0
    inserted:    Dict[str, int] = field(default_factory=dict)


@dataclass
class ScanReport:
    windows: List[WindowResult] = field(default_factory=list)
    failed:  List[Tuple[int, int]] = field(default_factory=list)


def iter_windows(start: int, end: int, size: int) -> Iterator[Tuple[int, int]]:
    """Inclusive [from, to] windows covering [start, end]."""
    if size <= 0:
        raise ValueError("window size must be positive")
    frm = start
    while frm <= end:
        to = min(frm + size - 1, end)
        yield frm, to
        frm = to + 1


class HistoricalScanner:
    """
    Backfill over a fixed inclusive block range, one window at a time.

    Each window fetches its blocks concurrently, records token deployments,
    pulls the transfer logs for the whole window in one query and writes one
    batch per table. A window that fails is logged, dead-lettered and skipped;
    the scan always finishes in DONE.
    """

    def __init__(self, reader, conn, start: int, end: int, batch_size: int = DEFAULT_BATCH_SIZE):
        self.reader     = reader
        self.conn       = conn
        self.start      = start
        self.end        = end
        self.batch_size = batch_size
        self.state      = ScanState.IDLE

    def windows(self):
        return iter_windows(self.start, self.end, self.batch_size)

    async def process_window(self, from_block: int, to_block: int) -> WindowResult:
        result = WindowResult(from_block, to_block)

        self.state = ScanState.FETCHING
        fetched = await gather_all([
            self.reader.get_block(n, full_transactions=True)
            for n in range(from_block, to_block + 1)
        ])
        blocks = {b.number: b for b in fetched}
        result.blocks = len(blocks)

        self.state = ScanState.DETECTING
        candidates = []
        for n in sorted(blocks):
            candidates.extend(find_deployments(blocks[n]))
        result.candidates = len(candidates)
        deployments = await batch_index_deployments(self.reader, self.conn, candidates)
        result.deployments = len(deployments)

        logs = await self.reader.get_logs(from_block, to_block, TRANSFER_TOPICS)
        result.logs = len(logs)
        logger.info("blocks %d-%d: %d logs fetched", from_block, to_block, len(logs))

        self.state = ScanState.DECODING
        timestamps = {n: b.timestamp for n, b in blocks.items()}
        transfers = partition_logs(logs, timestamps)
        if transfers.skipped_batch:
            logger.info("blocks %d-%d: skipped %d ERC1155 TransferBatch logs",
                        from_block, to_block, transfers.skipped_batch)

        self.state = ScanState.PERSISTING
        result.inserted = persist_transfers(self.conn, transfers)
        return result

    async def run(self) -> ScanReport:
        report = ScanReport()
        logger.info("starting block scan %d-%d (window %d)", self.start, self.end, self.batch_size)
        self.state = ScanState.WINDOWING
        for frm, to in self.windows():
            try:
                result = await self.process_window(frm, to)
            except Exception as e:
                logger.exception("window %d-%d failed, skipping", frm, to)
                report.failed.append((frm, to))
                try:
                    store.record_failed_window(self.conn, frm, to, repr(e))
                except Exception:
                    logger.exception("could not record failed window %d-%d", frm, to)
            else:
                report.windows.append(result)
                logger.info("window %d-%d done: %d deployments, %s",
                            frm, to, result.deployments, result.inserted)
            self.state = ScanState.WINDOWING
        self.state = ScanState.DONE
        logger.info("block scan complete: %d windows ok, %d failed",
                    len(report.windows), len(report.failed))
        return report
