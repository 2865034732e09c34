import logging
from typing import Optional

from token_indexer.chain import Block
from token_indexer.config import TRANSFER_TOPICS
from token_indexer.events import index_log

logger = logging.getLogger(__name__)


class LiveWatcher:
    """Follows new blocks and indexes their transfer logs one by one.

    Only logs are read here; deployment detection needs full transactions and
    runs in the historical scan only.
    """

    def __init__(self, reader, conn, poll_interval: float = 1.0):
        self.reader        = reader
        self.conn          = conn
        self.poll_interval = poll_interval
        self.last_block: Optional[int] = None

    async def handle_block(self, header: Block) -> int:
        n = header.number
        indexed = 0
        try:
            logs = await self.reader.get_logs(n, n, TRANSFER_TOPICS)
            for log in logs:
                if index_log(self.conn, log, header.timestamp) is not None:
                    indexed += 1
        except Exception:
            logger.exception("live watcher failed on block %d", n)
        else:
            logger.debug("block %d: %d transfer logs", n, indexed)
        self.last_block = n
        return indexed

    def on_error(self, exc: Exception):
        logger.error("new block subscription error: %s", exc)

    async def run(self):
        logger.info("starting live watcher")
        await self.reader.watch_new_blocks(self.handle_block, self.on_error, self.poll_interval)
