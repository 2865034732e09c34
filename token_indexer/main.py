import asyncio
import logging
from typing import Awaitable, Callable

import uvloop

from token_indexer.chain import ChainReader
from token_indexer.config import Settings, get_settings
from token_indexer.db import db, ensure_schema
from token_indexer.errors import RpcError
from token_indexer.live import LiveWatcher
from token_indexer.logging_setup import setup_logging
from token_indexer.scanner import HistoricalScanner

logger = logging.getLogger(__name__)


async def supervise(name: str, factory: Callable[[], Awaitable[object]],
                    restart_delay: float = 5.0, restart: bool = True):
    """Run one driver; restart it after an unexpected crash if asked to.
    A clean return ends supervision."""
    while True:
        try:
            await factory()
            logger.info("%s finished", name)
            return
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("%s crashed", name)
            if not restart:
                return
        logger.info("restarting %s in %.1fs", name, restart_delay)
        await asyncio.sleep(restart_delay)


async def run(settings: Settings):
    reader = ChainReader.from_url(settings.rpc_url)
    try:
        latest = await reader.block_number()
        logger.info("connected to %s, head=%d", settings.rpc_url, latest)
    except RpcError as e:
        logger.warning("head check failed, starting drivers anyway: %s", e)

    conn = db(settings.db_path)
    ensure_schema(conn)

    scanner = HistoricalScanner(reader, conn, settings.start_block, settings.end_block,
                                settings.batch_size)
    watcher = LiveWatcher(reader, conn, settings.poll_interval)

    # independent drivers; they only meet in the store's unique keys
    await asyncio.gather(
        supervise("historical", scanner.run, settings.restart_delay),
        supervise("live", watcher.run, settings.restart_delay),
    )


async def main():
    settings = get_settings()
    setup_logging(settings.log_level)
    await run(settings)


def cli():
    uvloop.run(main())


if __name__ == "__main__":
    cli()
