import asyncio

from token_indexer.chain import Block
from token_indexer.config import ERC1155_TRANSFER_BATCH
from token_indexer.db import count_rows, fetch_rows
from token_indexer.errors import RpcError
from token_indexer.live import LiveWatcher
from tests.fakes import addr, creation_tx, erc20_log, erc721_log, make_log, word


def test_handle_block_indexes_that_block_only(chain, conn):
    chain.add_block(5, timestamp=500)
    chain.logs += [
        erc20_log(5, 0, addr(1), addr(2), 100),
        erc721_log(5, 1, addr(1), addr(2), 7),
        make_log(5, 2, [ERC1155_TRANSFER_BATCH], word(64)),
        erc20_log(6, 0, addr(1), addr(2), 1),
    ]
    watcher = LiveWatcher(chain, conn)
    assert asyncio.run(watcher.handle_block(Block(5, 500))) == 3
    assert watcher.last_block == 5
    assert count_rows(conn, "erc20_transfers") == 1
    row = fetch_rows(conn, "erc721_transfers")[0]
    assert (row["token_id"], row["ts"]) == ("7", 500)


def test_live_path_skips_deployments(chain, conn):
    chain.add_block(3, transactions=[creation_tx(addr(9), 0, "0x01")])
    chain.add_token("0x" + "00" * 20, erc721=True)
    asyncio.run(LiveWatcher(chain, conn).handle_block(Block(3, 1)))
    assert count_rows(conn, "contract_deployments") == 0
    assert chain.calls == []


def test_block_failure_is_contained(chain, conn):
    chain.fail_logs.add(8)
    chain.logs.append(erc20_log(9, 0, addr(1), addr(2), 1))
    chain.new_heads = [Block(8, 80), Block(9, 90)]
    asyncio.run(LiveWatcher(chain, conn).run())
    rows = fetch_rows(conn, "erc20_transfers")
    assert [r["block_number"] for r in rows] == [9]


def test_subscription_errors_are_logged(chain, conn, caplog):
    chain.new_heads = [RpcError("eth_blockNumber", "connection reset"), Block(1, 10)]
    chain.logs.append(erc20_log(1, 0, addr(1), addr(2), 3))
    asyncio.run(LiveWatcher(chain, conn).run())
    assert "connection reset" in caplog.text
    assert count_rows(conn, "erc20_transfers") == 1
