# mcp_server.py: read-only query tools over the indexed store
import logging
import sqlite3
from typing import Any, Callable, Optional

from fastmcp import FastMCP
from pydantic import BaseModel, Field

from token_indexer import queries
from token_indexer.config import get_settings, load_query_settings
from token_indexer.db import db as open_db
from token_indexer.errors import QueryError
from token_indexer.logging_setup import setup_logging

logger = logging.getLogger(__name__)

mcp = FastMCP("token-indexer-mcp")

_conn: Optional[sqlite3.Connection] = None


def get_db() -> sqlite3.Connection:
    global _conn
    if _conn is None:
        _conn = open_db(get_settings(load_query_settings).db_path)
    return _conn


def handle(fn: Callable[..., Any], *args, conn: Optional[sqlite3.Connection] = None):
    """Run a query; QueryError becomes an {"error", "status"} payload."""
    try:
        return fn(conn if conn is not None else get_db(), *args)
    except QueryError as e:
        return e.to_dict()


# --------- Pydantic input models ----------
class AddressIn(BaseModel):
    address: str = Field(..., min_length=42, max_length=42)


class ContractIn(BaseModel):
    contract: str = Field(..., min_length=42, max_length=42)


class StandardIn(BaseModel):
    standard: str = Field(..., description="ERC20 | ERC721 | ERC1155")


# ----------------- Tools ------------------
@mcp.tool(name="erc20_transfers")
def erc20_transfers_t(args: AddressIn):
    """Latest 100 ERC-20 transfers sent or received by an address."""
    return handle(queries.erc20_transfers_for, args.address)


@mcp.tool(name="erc721_transfers")
def erc721_transfers_t(args: ContractIn):
    """Latest 100 ERC-721 transfers of a collection."""
    return handle(queries.erc721_transfers_for, args.contract)


@mcp.tool(name="erc1155_transfers")
def erc1155_transfers_t(args: ContractIn):
    """Latest 100 ERC-1155 single transfers of a contract."""
    return handle(queries.erc1155_transfers_for, args.contract)


@mcp.tool(name="deployments_by_type")
def deployments_by_type_t(args: StandardIn):
    """Latest 100 token deployments of one standard."""
    return handle(queries.deployments_by_standard, args.standard)


@mcp.tool(name="deployment_get")
def deployment_get_t(args: AddressIn):
    """Deployment record of a token contract."""
    return handle(queries.deployment_by_address, args.address)


@mcp.tool(name="health")
def health_t() -> dict:
    """Row counts per table."""
    return handle(queries.health)


def main():
    settings = get_settings(load_query_settings)
    setup_logging()
    logger.info("serving %s on %s:%d", settings.db_path, settings.mcp_host, settings.mcp_port)
    mcp.run(transport="http", host=settings.mcp_host, port=settings.mcp_port)


if __name__ == "__main__":
    main()
