import pytest

from token_indexer import queries
from token_indexer.db import insert_deployment, insert_erc20_transfers, insert_erc721_transfers
from token_indexer.errors import QueryError
from token_indexer.models import ContractDeployment, ERC20Transfer, ERC721Transfer
from tests.fakes import addr

ALICE = addr(0xA11CE)
TOKEN = addr(0x70C)


def _erc20(block, frm, to, log_index=0):
    return ERC20Transfer(tx_hash="0x%064x" % block, log_index=log_index, block_number=block,
                         contract=TOKEN, from_=frm, to=to, value="1", ts=block)


def test_erc20_by_participant_most_recent_first(conn):
    insert_erc20_transfers(conn, [_erc20(1, ALICE, addr(2)), _erc20(2, addr(3), ALICE),
                                  _erc20(3, addr(3), addr(4))])
    rows = queries.erc20_transfers_for(conn, ALICE.upper().replace("0X", "0x"))
    assert [r["block_number"] for r in rows] == [2, 1]


def test_recent_limit(conn):
    insert_erc20_transfers(conn, [_erc20(n, ALICE, addr(2)) for n in range(150)])
    rows = queries.erc20_transfers_for(conn, ALICE)
    assert len(rows) == 100
    assert rows[0]["block_number"] == 149


def test_erc721_by_contract(conn):
    insert_erc721_transfers(conn, [ERC721Transfer(
        tx_hash="0x01", log_index=0, block_number=5, contract=TOKEN, from_=ALICE, to=addr(2),
        token_id="7", ts=5)])
    assert queries.erc721_transfers_for(conn, TOKEN)[0]["token_id"] == "7"
    assert queries.erc1155_transfers_for(conn, TOKEN) == []


def test_deployments(conn):
    insert_deployment(conn, ContractDeployment(
        contract=TOKEN, tx_hash="0x01", block_number=3, deployer=ALICE, bytecode=None,
        token_standard="ERC20", ts=3))
    assert [d["contract"] for d in queries.deployments_by_standard(conn, "erc20")] == [TOKEN]
    assert queries.deployments_by_standard(conn, "ERC721") == []
    assert queries.deployment_by_address(conn, TOKEN)["token_standard"] == "ERC20"


def test_invalid_standard(conn):
    with pytest.raises(QueryError) as exc:
        queries.deployments_by_standard(conn, "ERC777")
    assert exc.value.status == 400
    assert exc.value.to_dict()["allowed"] == ["ERC20", "ERC721", "ERC1155"]


def test_missing_deployment(conn):
    with pytest.raises(QueryError) as exc:
        queries.deployment_by_address(conn, addr(1))
    assert exc.value.status == 404
    assert exc.value.error == "not_found"


def test_store_failure_is_500(conn):
    conn.close()
    with pytest.raises(QueryError) as exc:
        queries.erc721_transfers_for(conn, TOKEN)
    assert exc.value.status == 500


def test_health(conn):
    out = queries.health(conn)
    assert out["ok"] is True
    assert out["counts"]["failed_windows"] == 0
    assert out["counts"]["erc20_transfers"] == 0


def test_mcp_handle_maps_errors(conn):
    from token_indexer.mcp_server import handle
    assert handle(queries.deployment_by_address, addr(1), conn=conn) == {"error": "not_found", "status": 404}
    assert handle(queries.erc20_transfers_for, ALICE, conn=conn) == []
