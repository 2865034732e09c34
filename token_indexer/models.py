from dataclasses import astuple, dataclass
from typing import ClassVar, Optional, Tuple


# Row types written by the pipeline. Addresses are lowercase hex, uint256
# values are decimal strings, ts is the block timestamp in unix seconds.
# Field order matches COLUMNS.

@dataclass(frozen=True)
class ContractDeployment:
    TABLE:   ClassVar[str] = "contract_deployments"
    COLUMNS: ClassVar[Tuple[str, ...]] = (
        "contract", "tx_hash", "block_number", "deployer", "bytecode", "token_standard", "ts",
    )

    contract:       str
    tx_hash:        str
    block_number:   int
    deployer:       str
    bytecode:       Optional[str]
    token_standard: str
    ts:             int


@dataclass(frozen=True)
class ERC20Transfer:
    TABLE:   ClassVar[str] = "erc20_transfers"
    COLUMNS: ClassVar[Tuple[str, ...]] = (
        "tx_hash", "log_index", "block_number", "contract", "from", "to", "value", "ts",
    )

    tx_hash:      str
    log_index:    int
    block_number: int
    contract:     str
    from_:        str
    to:           str
    value:        str
    ts:           int


@dataclass(frozen=True)
class ERC721Transfer:
    TABLE:   ClassVar[str] = "erc721_transfers"
    COLUMNS: ClassVar[Tuple[str, ...]] = (
        "tx_hash", "log_index", "block_number", "contract", "from", "to", "token_id", "ts",
    )

    tx_hash:      str
    log_index:    int
    block_number: int
    contract:     str
    from_:        str
    to:           str
    token_id:     str
    ts:           int


@dataclass(frozen=True)
class ERC1155Transfer:
    TABLE:   ClassVar[str] = "erc1155_transfers"
    COLUMNS: ClassVar[Tuple[str, ...]] = (
        "tx_hash", "log_index", "block_number", "contract", "operator", "from", "to",
        "token_id", "value", "ts",
    )

    tx_hash:      str
    log_index:    int
    block_number: int
    contract:     str
    operator:     str
    from_:        str
    to:           str
    token_id:     str
    value:        str
    ts:           int


def row_values(record) -> tuple:
    return astuple(record)
