import os
from typing import Mapping, Optional
from urllib.parse import urlparse

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from token_indexer.errors import ConfigError

# --- event topics (keccak256 of the event signature) ---
# Transfer(address,address,uint256): shared by ERC-20 and ERC-721
ERC20_TRANSFER_TOPIC0   = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"
ERC721_TRANSFER_TOPIC0  = ERC20_TRANSFER_TOPIC0
# TransferSingle(address,address,address,uint256,uint256)
ERC1155_TRANSFER_SINGLE = "0xc3d58168c5ae7397731d063d5bbf3d657854427343f4c083240f7aacaa2d0f62"
# TransferBatch(address,address,address,uint256[],uint256[])
ERC1155_TRANSFER_BATCH  = "0x4a39dc06d4c0dbc64b70af90fd698a233a518aa5d07e595d983b8c0526c8f7fb"

TRANSFER_TOPICS = (
    ERC20_TRANSFER_TOPIC0,
    ERC1155_TRANSFER_SINGLE,
    ERC1155_TRANSFER_BATCH,
)

ZERO_ADDR = "0x0000000000000000000000000000000000000000"

# --- ERC-165 interface ids ---
ERC721_INTERFACE_ID  = bytes.fromhex("80ac58cd")
ERC1155_INTERFACE_ID = bytes.fromhex("d9b67a26")

DEFAULT_BATCH_SIZE = 2000
RPC_SCHEMES        = ("http", "https")
SQLITE_PREFIX      = "sqlite:///"

# settings field -> environment variable
ENV_VARS = {
    "rpc_url":       "RPC_URL",
    "database_url":  "DATABASE_URL",
    "start_block":   "START_BLOCK",
    "end_block":     "END_BLOCK",
    "batch_size":    "BATCH_SIZE",
    "poll_interval": "POLL_INTERVAL",
    "restart_delay": "RESTART_DELAY",
    "log_level":     "LOG_LEVEL",
    "mcp_host":      "MCP_HOST",
    "mcp_port":      "MCP_PORT",
}


def _sqlite_url(v: str) -> str:
    if not v.startswith(SQLITE_PREFIX) or not v[len(SQLITE_PREFIX):]:
        raise ValueError(f"expected {SQLITE_PREFIX}<path>")
    return v


class QuerySettings(BaseModel):
    """The query surface only needs the store and a bind address."""
    database_url: str
    mcp_host:     str = "0.0.0.0"
    mcp_port:     int = Field(8000, gt=0, lt=65536)

    @field_validator("database_url")
    @classmethod
    def _check_database_url(cls, v: str) -> str:
        return _sqlite_url(v)

    @property
    def db_path(self) -> str:
        return self.database_url[len(SQLITE_PREFIX):]


class Settings(QuerySettings):
    rpc_url:       str
    start_block:   int = Field(ge=0)
    end_block:     int = Field(ge=0)
    batch_size:    int = Field(DEFAULT_BATCH_SIZE, gt=0)
    poll_interval: float = Field(1.0, gt=0)
    restart_delay: float = Field(5.0, ge=0)
    log_level:     str = "INFO"

    @field_validator("rpc_url")
    @classmethod
    def _check_rpc_url(cls, v: str) -> str:
        parsed = urlparse(v)
        if parsed.scheme not in RPC_SCHEMES or not parsed.netloc:
            raise ValueError(f"expected a {'/'.join(RPC_SCHEMES)} URL")
        return v

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError("unknown log level")
        return v

    @model_validator(mode="after")
    def _check_range(self):
        if self.end_block < self.start_block:
            raise ValueError("END_BLOCK must be >= START_BLOCK")
        return self


def _problems(err: ValidationError):
    out = []
    for e in err.errors():
        loc = e.get("loc") or ()
        name = ENV_VARS.get(loc[0], str(loc[0])) if loc else "settings"
        out.append(f"{name}: {e['msg']}")
    return out


def _load(model, environ: Optional[Mapping[str, str]]):
    env = os.environ if environ is None else environ
    raw = {}
    for field in model.model_fields:
        value = env.get(ENV_VARS[field])
        if value is not None and value.strip() != "":
            raw[field] = value.strip()
    try:
        return model(**raw)
    except ValidationError as e:
        raise ConfigError(_problems(e)) from e


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    return _load(Settings, environ)


def load_query_settings(environ: Optional[Mapping[str, str]] = None) -> QuerySettings:
    return _load(QuerySettings, environ)


def get_settings(loader=load_settings):
    # always load from local file
    load_dotenv(".env")
    try:
        return loader()
    except ConfigError as e:
        raise SystemExit(str(e))
