"""Main deployment API for contract-deployer."""

import hashlib
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

from loguru import logger

from .abi import build_deployment_data, validate_constructor_args
from .constants import DEFAULT_CONFIRMATION_TIMEOUT, DEFAULT_GAS_LIMIT, DEFAULT_RETRY_BACKOFF
from .exceptions import (
    ArgumentMismatchError,
    ConfirmationTimeoutError,
    ContractNotFoundError,
    DeploymentPendingError,
    RpcConnectionError,
    RpcError,
    SubmissionError,
)
from .records import DeploymentStore
from .rpc import RpcClient
from .types import CompiledContract, DeploymentRecord, DeploymentTransaction, TransactionReceipt

# One lock per account so concurrent deployments from the same account never
# race for a nonce
_account_locks: Dict[str, threading.Lock] = {}
_account_locks_guard = threading.Lock()


def account_lock(account: str) -> threading.Lock:
    """Get the process-wide lock serializing deployments from an account."""
    with _account_locks_guard:
        return _account_locks.setdefault(account.lower(), threading.Lock())


def select_contract(compiled: Mapping[str, CompiledContract], contract_name: str) -> CompiledContract:
    """
    Pick a contract from compiler output.

    Raises:
        ContractNotFoundError: If no contract with that name was compiled
    """
    if contract_name not in compiled:
        raise ContractNotFoundError(contract_name, list(compiled.keys()))
    return compiled[contract_name]


def _hex_to_bytes(value: Optional[str]) -> Optional[bytes]:
    if not isinstance(value, str):
        return None
    try:
        return bytes.fromhex(value[2:] if value.startswith("0x") else value)
    except ValueError:
        return None


class Deployer:
    """Deploys compiled contracts through an RpcClient and confirms them."""

    def __init__(
        self,
        rpc: RpcClient,
        gas_limit: int = DEFAULT_GAS_LIMIT,
        confirmation_timeout: float = DEFAULT_CONFIRMATION_TIMEOUT,
        retry_backoff: float = DEFAULT_RETRY_BACKOFF,
        passphrase: str = "",
        store: Optional[DeploymentStore] = None,
    ):
        """
        Initialize the deployer.

        Args:
            rpc: Node client
            gas_limit: Gas ceiling used when deploy() is not given one
            confirmation_timeout: Seconds to wait for a receipt
            retry_backoff: Seconds to wait before the single submission retry
            passphrase: Passphrase for unlocking the deploying account
            store: Record store; enables redeploy detection when given
        """
        self.rpc = rpc
        self.gas_limit = gas_limit
        self.confirmation_timeout = confirmation_timeout
        self.retry_backoff = retry_backoff
        self.passphrase = passphrase
        self.store = store

    def deploy(
        self,
        compiled: Mapping[str, CompiledContract],
        contract_name: str,
        constructor_args: Sequence[Any] = (),
        account: Optional[str] = None,
        gas_limit: Optional[int] = None,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
        force: bool = False,
    ) -> DeploymentRecord:
        """
        Deploy a contract and wait for it to be confirmed.

        Validation happens before any transaction is sent. If a store is
        configured and an identical deployment (same chain, bytecode and
        arguments) is recorded with code still at its address, that record
        is returned instead of deploying again, unless ``force`` is set.

        Args:
            compiled: Compiler output
            contract_name: Contract to deploy
            constructor_args: Constructor arguments, in order
            account: Sending account (defaults to the node's first account)
            gas_limit: Gas ceiling (defaults to the deployer's)
            timeout: Confirmation timeout in seconds (defaults to the deployer's)
            cancel_event: Set to stop waiting before submission or confirmation
            force: Deploy even if an identical deployment is recorded

        Returns:
            DeploymentRecord of the confirmed deployment

        Raises:
            ContractNotFoundError: If contract_name was not compiled
            ArgumentMismatchError: If constructor_args don't fit the constructor
            NoAccountError: If no account is given and the node has none
            SubmissionError: If the transaction is rejected, reverts or
                cannot be submitted after one retry
            DeploymentPendingError: If confirmation times out or is cancelled
        """
        contract = select_contract(compiled, contract_name)
        args = validate_constructor_args(contract.abi, constructor_args)
        data = build_deployment_data(contract, args)
        bytecode_hash = hashlib.sha256(contract.bytecode).hexdigest()

        chain_id = self.rpc.chain_id()
        if account is None:
            account = self.rpc.default_account()

        with account_lock(account):
            # Looked up under the lock so queued identical requests see the
            # record written by the one ahead of them
            if self.store is not None and not force:
                existing = self._find_existing(contract.name, chain_id, bytecode_hash, args)
                if existing is not None:
                    return existing

            if cancel_event is not None and cancel_event.is_set():
                raise SubmissionError("Deployment cancelled before the transaction was submitted")

            logger.info(f"Deploying {contract.name} from {account}")
            if not self.rpc.unlock(account, self.passphrase):
                logger.warning(
                    f"Could not unlock account {account}; unlock it on the node "
                    "manually if submission fails"
                )

            transaction = DeploymentTransaction(
                sender=account,
                data=data,
                gas=gas_limit if gas_limit is not None else self.gas_limit,
            )
            tx_hash = self._submit(transaction, cancel_event)
            logger.info(f"Submitted {contract.name} deployment: {tx_hash}")

            receipt = self._await_receipt(tx_hash, timeout, cancel_event)
            return self._finalize(contract, args, account, receipt, chain_id, bytecode_hash)

    def resume(
        self,
        compiled: Mapping[str, CompiledContract],
        contract_name: str,
        transaction_hash: str,
        constructor_args: Sequence[Any] = (),
        account: Optional[str] = None,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> DeploymentRecord:
        """
        Wait for a previously submitted deployment instead of sending a new one.

        Args:
            compiled: Compiler output the transaction was built from
            contract_name: Deployed contract
            transaction_hash: Hash reported by DeploymentPendingError
            constructor_args: Arguments the transaction was built with
            account: Sender; looked up from the transaction when omitted
            timeout: Confirmation timeout in seconds
            cancel_event: Set to stop waiting

        Returns:
            DeploymentRecord of the confirmed deployment

        Raises:
            ContractNotFoundError, ArgumentMismatchError: As for deploy(), or if
                the transaction was not built from this contract and arguments
            SubmissionError: If the transaction reverted
            DeploymentPendingError: If it is still not confirmed
        """
        contract = select_contract(compiled, contract_name)
        args = validate_constructor_args(contract.abi, constructor_args)
        data = build_deployment_data(contract, args)
        bytecode_hash = hashlib.sha256(contract.bytecode).hexdigest()
        chain_id = self.rpc.chain_id()

        transaction = self.rpc.get_transaction(transaction_hash)
        if transaction is None:
            logger.warning(
                f"Node does not know transaction {transaction_hash}; cannot check that it "
                f"deploys {contract.name} with these arguments"
            )
        elif _hex_to_bytes(transaction.get("input", transaction.get("data"))) != data:
            raise ArgumentMismatchError(
                f"Transaction {transaction_hash} does not deploy {contract.name} with "
                f"constructor arguments {args}; check --contract-name and --args",
                received=args,
            )

        if account is None:
            account = (transaction or {}).get("from") or ""

        logger.info(f"Resuming wait for {contract.name} deployment {transaction_hash}")
        receipt = self._await_receipt(transaction_hash, timeout, cancel_event)
        return self._finalize(contract, args, account, receipt, chain_id, bytecode_hash)

    def _find_existing(
        self,
        contract_name: str,
        chain_id: Optional[int],
        bytecode_hash: str,
        args: List[Any],
    ) -> Optional[DeploymentRecord]:
        record = self.store.find_matching(contract_name, chain_id, bytecode_hash, args)
        if record is None:
            return None

        if not self.rpc.get_code(record.contract_address):
            logger.info(
                f"Recorded {contract_name} at {record.contract_address} has no code; deploying again"
            )
            return None

        logger.warning(
            f"{contract_name} with identical bytecode and arguments is already deployed at "
            f"{record.contract_address} (tx {record.transaction_hash}); reusing it. "
            "Use --force to deploy again."
        )
        return record

    def _submit(self, transaction: DeploymentTransaction, cancel_event: Optional[threading.Event]) -> str:
        # Transport failures are retried once; node rejections are final
        try:
            return self.rpc.submit_transaction(transaction)
        except RpcConnectionError as e:
            logger.warning(f"Submission failed: {e}; retrying in {self.retry_backoff:g}s")
        except RpcError as e:
            raise SubmissionError(f"Node rejected deployment transaction: {e}") from e

        waiter = cancel_event if cancel_event is not None else threading.Event()
        if waiter.wait(self.retry_backoff):
            raise SubmissionError("Deployment cancelled before the transaction was submitted")

        try:
            return self.rpc.submit_transaction(transaction)
        except RpcError as e:
            raise SubmissionError(f"Deployment transaction submission failed after retry: {e}") from e

    def _await_receipt(
        self,
        transaction_hash: str,
        timeout: Optional[float],
        cancel_event: Optional[threading.Event],
    ) -> TransactionReceipt:
        timeout = timeout if timeout is not None else self.confirmation_timeout
        try:
            return self.rpc.wait_for_confirmation(transaction_hash, timeout, cancel_event)
        except ConfirmationTimeoutError as e:
            reason = "cancelled" if e.cancelled else f"not confirmed within {timeout:g}s"
            raise DeploymentPendingError(
                f"Deployment transaction {transaction_hash} {reason}; it may still be "
                f"mined. Resume with --resume {transaction_hash} instead of redeploying.",
                transaction_hash,
                cancelled=e.cancelled,
            ) from e

    def _finalize(
        self,
        contract: CompiledContract,
        args: List[Any],
        account: str,
        receipt: TransactionReceipt,
        chain_id: Optional[int],
        bytecode_hash: str,
    ) -> DeploymentRecord:
        tx_hash = receipt.transaction_hash
        if receipt.status == 0:
            raise SubmissionError(f"Deployment transaction {tx_hash} reverted", tx_hash)
        if not receipt.contract_address:
            raise SubmissionError(f"Transaction {tx_hash} did not create a contract", tx_hash)

        address = receipt.contract_address
        try:
            code: Optional[bytes] = self.rpc.get_code(address)
        except RpcConnectionError as e:
            if receipt.status is None:
                raise SubmissionError(
                    f"Could not check code at {address} after transaction {tx_hash}: {e}. "
                    f"Resume with --resume {tx_hash} instead of redeploying.",
                    tx_hash,
                ) from e
            logger.warning(f"Could not check code at {address}: {e}; recording it as unverified")
            code = None

        if code is not None and not code:
            # Without a status field, missing code is the only sign of failure
            if receipt.status is None:
                raise SubmissionError(
                    f"No code at {address} after transaction {tx_hash}; the constructor "
                    "probably failed or ran out of gas",
                    tx_hash,
                )
            logger.warning(f"Transaction {tx_hash} succeeded but {address} has no runtime code")

        record = DeploymentRecord(
            contract_name=contract.name,
            contract_address=address,
            transaction_hash=tx_hash,
            block_number=receipt.block_number,
            sender=account,
            abi=contract.abi,
            constructor_args=args,
            confirmed=True,
            verified=bool(code),
            chain_id=chain_id,
            bytecode_hash=bytecode_hash,
            gas_used=receipt.gas_used,
            deployed_at=datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC"),
        )
        logger.success(f"{contract.name} deployed at {address} in block {receipt.block_number}")

        if self.store is not None:
            try:
                self.store.add(record)
            except OSError as e:
                logger.warning(
                    f"Could not write deployment record to {self.store.path}: {e}; "
                    f"{contract.name} is at {address} (tx {tx_hash})"
                )
        return record
