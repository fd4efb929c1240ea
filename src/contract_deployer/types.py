"""Data types and dataclasses for contract-deployer."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Diagnostic:
    """A single compiler message, located in the source."""

    message: str
    file: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None
    severity: str = "error"  # "error" or "warning"

    def __str__(self) -> str:
        location = self.file or "<source>"
        if self.line is not None:
            location = f"{location}:{self.line}"
            if self.column is not None:
                location = f"{location}:{self.column}"
        return f"{location}: {self.severity}: {self.message}"


@dataclass(frozen=True)
class CompiledContract:
    """Compiler output for one contract."""

    name: str  # Normalized name, e.g. "VotedAdmins"
    bytecode: bytes  # Creation bytecode, without 0x prefix
    abi: List[Dict[str, Any]]  # Interface descriptor


@dataclass(frozen=True)
class DeploymentTransaction:
    """A contract-creation transaction ready for submission."""

    sender: str
    data: bytes  # Creation bytecode followed by encoded constructor args
    gas: int

    def to_rpc_params(self) -> Dict[str, str]:
        """Render as the transaction object expected by eth_sendTransaction."""
        return {
            "from": self.sender,
            "data": "0x" + self.data.hex(),
            "gas": hex(self.gas),
        }


@dataclass(frozen=True)
class TransactionReceipt:
    """The subset of a transaction receipt the deployer relies on."""

    transaction_hash: str
    block_number: int
    block_hash: Optional[str] = None
    contract_address: Optional[str] = None
    status: Optional[int] = None  # None on pre-Byzantium chains
    gas_used: Optional[int] = None

    @classmethod
    def from_rpc(cls, data: Dict[str, Any]) -> "TransactionReceipt":
        """Build a receipt from an eth_getTransactionReceipt result."""
        status = data.get("status")
        gas_used = data.get("gasUsed")
        return cls(
            transaction_hash=data["transactionHash"],
            block_number=int(data["blockNumber"], 16),
            block_hash=data.get("blockHash"),
            contract_address=data.get("contractAddress"),
            status=int(status, 16) if status is not None else None,
            gas_used=int(gas_used, 16) if gas_used is not None else None,
        )


@dataclass(frozen=True)
class DeploymentRecord:
    """A confirmed deployment. Never created for unconfirmed transactions."""

    # Required fields
    contract_name: str
    contract_address: str
    transaction_hash: str
    block_number: int
    sender: str
    abi: List[Dict[str, Any]]

    # Optional fields
    constructor_args: List[Any] = field(default_factory=list)
    confirmed: bool = True
    verified: bool = False  # Runtime code observed at contract_address
    chain_id: Optional[int] = None
    bytecode_hash: Optional[str] = None  # sha256 of creation bytecode
    gas_used: Optional[int] = None
    deployed_at: Optional[str] = None  # UTC, "%Y-%m-%d %H:%M:%S UTC"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with fixed keys; bytes arguments become 0x-prefixed hex."""
        return {
            "contract_name": self.contract_name,
            "contract_address": self.contract_address,
            "transaction_hash": self.transaction_hash,
            "block_number": self.block_number,
            "confirmed": self.confirmed,
            "verified": self.verified,
            "sender": self.sender,
            "chain_id": self.chain_id,
            "constructor_args": [jsonable(arg) for arg in self.constructor_args],
            "bytecode_hash": self.bytecode_hash,
            "gas_used": self.gas_used,
            "deployed_at": self.deployed_at,
            "abi": self.abi,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeploymentRecord":
        return cls(
            contract_name=data["contract_name"],
            contract_address=data["contract_address"],
            transaction_hash=data["transaction_hash"],
            block_number=data["block_number"],
            sender=data["sender"],
            abi=data["abi"],
            constructor_args=data.get("constructor_args", []),
            confirmed=data.get("confirmed", True),
            verified=data.get("verified", False),
            chain_id=data.get("chain_id"),
            bytecode_hash=data.get("bytecode_hash"),
            gas_used=data.get("gas_used"),
            deployed_at=data.get("deployed_at"),
        )


def jsonable(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, (list, tuple)):
        return [jsonable(v) for v in value]
    if isinstance(value, Decimal):
        return str(value)
    return value
