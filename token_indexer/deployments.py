import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import rlp
from web3 import Web3

from token_indexer import db as store
from token_indexer.chain import Block, gather_all
from token_indexer.classifier import classify
from token_indexer.helpers import strip_0x
from token_indexer.models import ContractDeployment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeploymentCandidate:
    tx_hash:      str
    block_number: int
    contract:     str
    deployer:     str
    bytecode:     Optional[str]
    ts:           int


def create_address(sender: str, nonce: int) -> str:
    """CREATE address: keccak256(rlp([sender, nonce]))[12:]"""
    encoded = rlp.encode([bytes.fromhex(strip_0x(sender)), int(nonce)])
    return "0x" + bytes(Web3.keccak(encoded)[12:]).hex()


def find_deployments(block: Block) -> List[DeploymentCandidate]:
    out = []
    for tx in block.transactions:
        if tx.to is not None or strip_0x(tx.input or "") == "":
            continue
        out.append(DeploymentCandidate(
            tx_hash=tx.hash,
            block_number=block.number,
            contract=create_address(tx.from_, tx.nonce),
            deployer=tx.from_,
            bytecode=tx.input,
            ts=block.timestamp,
        ))
    return out


def _to_record(c: DeploymentCandidate, standard) -> ContractDeployment:
    return ContractDeployment(
        contract=c.contract,
        tx_hash=c.tx_hash,
        block_number=c.block_number,
        deployer=c.deployer,
        bytecode=c.bytecode,
        token_standard=standard.value,
        ts=c.ts,
    )


async def batch_index_deployments(reader, conn,
                                  candidates: Sequence[DeploymentCandidate]) -> List[ContractDeployment]:
    if not candidates:
        return []
    standards = await gather_all([classify(reader, c.contract) for c in candidates])
    records = [_to_record(c, s) for c, s in zip(candidates, standards) if s is not None]
    if records:
        inserted = store.insert_deployments(conn, records)
        logger.info("token deployments: %d candidates, %d tokens, %d new",
                    len(candidates), len(records), inserted)
    return records


async def index_deployment(reader, conn, candidate: DeploymentCandidate) -> Optional[ContractDeployment]:
    standard = await classify(reader, candidate.contract)
    if standard is None:
        return None
    record = _to_record(candidate, standard)
    store.insert_deployment(conn, record)
    return record
