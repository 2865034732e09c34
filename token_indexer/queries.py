import logging
import sqlite3
from typing import Any, Dict, List

from token_indexer import db as store
from token_indexer.classifier import TokenStandard
from token_indexer.errors import QueryError
from token_indexer.models import ContractDeployment, ERC20Transfer, ERC721Transfer, ERC1155Transfer

logger = logging.getLogger(__name__)

RECENT_LIMIT = 100


def _recent(conn, table: str, where: str, params) -> List[Dict[str, Any]]:
    try:
        return store.fetch_rows(conn, table, where, params, RECENT_LIMIT)
    except sqlite3.Error as e:
        logger.error("error fetching %s: %s", table, e)
        raise QueryError(500, "internal_error") from e


def erc20_transfers_for(conn, address: str):
    address = address.lower()
    return _recent(conn, ERC20Transfer.TABLE, '"from"=? OR "to"=?', (address, address))


def erc721_transfers_for(conn, contract: str):
    return _recent(conn, ERC721Transfer.TABLE, "contract=?", (contract.lower(),))


def erc1155_transfers_for(conn, contract: str):
    return _recent(conn, ERC1155Transfer.TABLE, "contract=?", (contract.lower(),))


def deployments_by_standard(conn, standard: str):
    allowed = [s.value for s in TokenStandard]
    raw = (standard or "").upper()
    if raw not in allowed:
        raise QueryError(400, "invalid_type", allowed=allowed)
    return _recent(conn, ContractDeployment.TABLE, "token_standard=?", (raw,))


def deployment_by_address(conn, address: str):
    try:
        item = store.get_deployment(conn, address.lower())
    except sqlite3.Error as e:
        logger.error("error fetching deployment %s: %s", address, e)
        raise QueryError(500, "internal_error") from e
    if item is None:
        raise QueryError(404, "not_found")
    return item


def health(conn):
    try:
        counts = {t: store.count_rows(conn, t) for t in sorted(store.TABLES)}
        counts["failed_windows"] = store.count_rows(conn, "failed_windows")
    except sqlite3.Error as e:
        logger.error("health check failed: %s", e)
        raise QueryError(500, "internal_error") from e
    return {"ok": True, "counts": counts}
