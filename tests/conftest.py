"""Shared pytest fixtures for contract-deployer tests."""

import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pytest

from contract_deployer.exceptions import ConfirmationTimeoutError, NoAccountError
from contract_deployer.types import CompiledContract, DeploymentTransaction, TransactionReceipt

DEPLOYER_ACCOUNT = "0x1111111111111111111111111111111111111111"
MOCK_CONTRACT_ADDRESS = "0x5fbdb2315678afecb367f032d93f642f64180aa3"
MOCK_TX_HASH = "0x" + "ab" * 32

VOTED_ADMINS_SOURCE = """pragma solidity ^0.4.18;

contract VotedAdmins {
    uint public minDays;
    uint public maxDays;
    uint public percent;

    function VotedAdmins(uint _minDays, uint _maxDays, uint _percent) public {
        minDays = _minDays;
        maxDays = _maxDays;
        percent = _percent;
    }
}
"""

VOTED_ADMINS_ABI: List[Dict[str, Any]] = [
    {
        "type": "constructor",
        "inputs": [
            {"name": "_minDays", "type": "uint256"},
            {"name": "_maxDays", "type": "uint256"},
            {"name": "_percent", "type": "uint256"},
        ],
        "payable": False,
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "percent",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
        "constant": True,
    },
]

VOTED_ADMINS_BYTECODE = bytes.fromhex("6060604052341561000f57600080fd5b")


class FakeRpcClient:
    """In-memory RpcClient recording every call it receives."""

    def __init__(
        self,
        accounts: Tuple[str, ...] = (DEPLOYER_ACCOUNT,),
        contract_address: Optional[str] = MOCK_CONTRACT_ADDRESS,
        tx_hash: str = MOCK_TX_HASH,
        confirms: bool = True,
        unlock_result: bool = True,
        status: Optional[int] = 1,
        code: bytes = b"\x60\x80",
        chain: Optional[int] = 1337,
    ):
        self.accounts = accounts
        self.contract_address = contract_address
        self.tx_hash = tx_hash
        self.confirms = confirms
        self.unlock_result = unlock_result
        self.status = status
        self.code = code
        self.chain = chain
        self.submit_errors: List[Exception] = []
        self.code_errors: List[Exception] = []
        self.transactions: Dict[str, Dict[str, Any]] = {}
        self.calls: List[Tuple[str, tuple]] = []
        self.submitted: List[DeploymentTransaction] = []

    def count(self, method: str) -> int:
        return sum(1 for name, _ in self.calls if name == method)

    def default_account(self) -> str:
        self.calls.append(("default_account", ()))
        if not self.accounts:
            raise NoAccountError("no accounts")
        return self.accounts[0]

    def unlock(self, account: str, passphrase: str = "", duration: int = 300) -> bool:
        self.calls.append(("unlock", (account, passphrase)))
        return self.unlock_result

    def submit_transaction(self, transaction: DeploymentTransaction) -> str:
        self.calls.append(("submit_transaction", (transaction,)))
        if self.submit_errors:
            raise self.submit_errors.pop(0)
        self.submitted.append(transaction)
        self.know_transaction(self.tx_hash, transaction.sender, transaction.data)
        return self.tx_hash

    def know_transaction(self, transaction_hash: str, sender: str, data: bytes) -> None:
        """Make the node report a transaction, as if it had seen it broadcast."""
        self.transactions[transaction_hash] = {
            "hash": transaction_hash,
            "from": sender,
            "input": "0x" + data.hex(),
        }

    def wait_for_confirmation(
        self,
        transaction_hash: str,
        timeout: float,
        cancel_event: Optional[threading.Event] = None,
    ) -> TransactionReceipt:
        self.calls.append(("wait_for_confirmation", (transaction_hash, timeout)))
        if not self.confirms:
            raise ConfirmationTimeoutError("timed out", transaction_hash)
        return TransactionReceipt(
            transaction_hash=transaction_hash,
            block_number=7,
            block_hash="0x" + "cd" * 32,
            contract_address=self.contract_address,
            status=self.status,
            gas_used=250_000,
        )

    def get_code(self, address: str) -> bytes:
        self.calls.append(("get_code", (address,)))
        if self.code_errors:
            raise self.code_errors.pop(0)
        return self.code

    def get_transaction(self, transaction_hash: str) -> Optional[Dict[str, Any]]:
        self.calls.append(("get_transaction", (transaction_hash,)))
        return self.transactions.get(transaction_hash)

    def chain_id(self) -> Optional[int]:
        self.calls.append(("chain_id", ()))
        return self.chain


@pytest.fixture
def voted_admins_source() -> str:
    """Return the VotedAdmins contract source."""
    return VOTED_ADMINS_SOURCE


@pytest.fixture
def voted_admins_file(tmp_path: Path) -> Path:
    """Write the VotedAdmins source to a temporary file."""
    path = tmp_path / "contracts" / "voted_admins.sol"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(VOTED_ADMINS_SOURCE)
    return path


@pytest.fixture
def voted_admins() -> CompiledContract:
    """Return a compiled VotedAdmins contract."""
    return CompiledContract(name="VotedAdmins", bytecode=VOTED_ADMINS_BYTECODE, abi=VOTED_ADMINS_ABI)


@pytest.fixture
def compiled(voted_admins: CompiledContract) -> Dict[str, CompiledContract]:
    """Return compiler output containing VotedAdmins."""
    return {"VotedAdmins": voted_admins}


@pytest.fixture
def solc_output() -> Dict[str, Dict[str, Any]]:
    """Return raw py-solc-x output for the VotedAdmins source."""
    return {
        "<stdin>:VotedAdmins": {
            "abi": VOTED_ADMINS_ABI,
            "bin": VOTED_ADMINS_BYTECODE.hex(),
        }
    }


@pytest.fixture
def fake_rpc() -> FakeRpcClient:
    """Return a fake node that confirms deployments immediately."""
    return FakeRpcClient()


@pytest.fixture
def record_file(tmp_path: Path) -> Path:
    """Return a path for a temporary deployment record file."""
    return tmp_path / ".contract-deployer" / "deployments.json"
