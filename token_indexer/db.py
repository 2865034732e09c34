import pathlib
import sqlite3
import time
from typing import Any, Dict, Iterable, List, Optional, Sequence

from token_indexer.models import (
    ContractDeployment, ERC20Transfer, ERC721Transfer, ERC1155Transfer, row_values,
)

SCHEMA_PATH = pathlib.Path(__file__).with_name("schema.sql")

TABLES = {
    ContractDeployment.TABLE,
    ERC20Transfer.TABLE,
    ERC721Transfer.TABLE,
    ERC1155Transfer.TABLE,
}


def db(path: str) -> sqlite3.Connection:
    conn = sqlite3.connect(path, isolation_level=None, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    conn.execute("PRAGMA temp_store=MEMORY;")
    return conn


def ensure_schema(conn: sqlite3.Connection):
    # read SQL from the file shipped next to this module
    conn.executescript(SCHEMA_PATH.read_text(encoding="utf-8"))


def _insert_sql(cls) -> str:
    cols   = ",".join(f'"{c}"' for c in cls.COLUMNS)
    qmarks = ",".join(["?"] * len(cls.COLUMNS))
    # duplicates on the unique key are skipped, never raised
    return f"INSERT OR IGNORE INTO {cls.TABLE} ({cols}) VALUES ({qmarks})"


def insert_rows(conn: sqlite3.Connection, rows: Sequence[Any]) -> int:
    """Write a batch of one record type in a single transaction.
    Returns how many rows were actually inserted."""
    if not rows:
        return 0
    cls = type(rows[0])
    if any(type(r) is not cls for r in rows):
        raise TypeError("insert_rows expects records of a single type")
    before = conn.total_changes
    conn.execute("BEGIN")
    try:
        conn.executemany(_insert_sql(cls), [row_values(r) for r in rows])
    except Exception:
        conn.execute("ROLLBACK")
        raise
    conn.execute("COMMIT")
    return conn.total_changes - before


def insert_row(conn: sqlite3.Connection, row) -> bool:
    cur = conn.execute(_insert_sql(type(row)), row_values(row))
    return cur.rowcount > 0


# ---------- deployments ----------
def insert_deployments(conn, deployments: Sequence[ContractDeployment]) -> int:
    return insert_rows(conn, list(deployments))


def insert_deployment(conn, deployment: ContractDeployment) -> bool:
    return insert_row(conn, deployment)


def get_deployment(conn, contract: str) -> Optional[Dict[str, Any]]:
    row = conn.execute(
        f"SELECT * FROM {ContractDeployment.TABLE} WHERE contract=?", (contract,)
    ).fetchone()
    return dict(row) if row else None


# ---------- transfers ----------
def insert_erc20_transfers(conn, transfers: Sequence[ERC20Transfer]) -> int:
    return insert_rows(conn, list(transfers))


def insert_erc721_transfers(conn, transfers: Sequence[ERC721Transfer]) -> int:
    return insert_rows(conn, list(transfers))


def insert_erc1155_transfers(conn, transfers: Sequence[ERC1155Transfer]) -> int:
    return insert_rows(conn, list(transfers))


def insert_transfer(conn, transfer) -> bool:
    if not isinstance(transfer, (ERC20Transfer, ERC721Transfer, ERC1155Transfer)):
        raise TypeError(f"not a transfer record: {type(transfer).__name__}")
    return insert_row(conn, transfer)


# ---------- dead letters ----------
def record_failed_window(conn, from_block: int, to_block: int, error: str):
    conn.execute(
        "INSERT INTO failed_windows(from_block, to_block, error, failed_at) VALUES (?,?,?,?)",
        (from_block, to_block, error, int(time.time())),
    )


def failed_windows(conn) -> List[Dict[str, Any]]:
    rows = conn.execute(
        "SELECT from_block, to_block, error, failed_at FROM failed_windows ORDER BY id"
    ).fetchall()
    return [dict(r) for r in rows]


# ---------- reads ----------
def fetch_rows(conn, table: str, where: Optional[str] = None,
               params: Iterable[Any] = (), limit: int = 100) -> List[Dict[str, Any]]:
    """Most recent rows of a table (by block, then insertion order)."""
    if table not in TABLES:
        raise ValueError(f"unknown table {table}")
    sql = f"SELECT * FROM {table}"
    if where:
        sql += f" WHERE {where}"
    sql += " ORDER BY block_number DESC, rowid DESC LIMIT ?"
    rows = conn.execute(sql, (*params, int(limit))).fetchall()
    return [dict(r) for r in rows]


def count_rows(conn, table: str) -> int:
    if table not in TABLES and table != "failed_windows":
        raise ValueError(f"unknown table {table}")
    return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
