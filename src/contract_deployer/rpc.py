"""JSON-RPC node access for contract-deployer."""

import itertools
import threading
import time
from typing import Any, Dict, List, Optional, Protocol

import requests
from loguru import logger

from .constants import DEFAULT_POLL_INTERVAL, DEFAULT_UNLOCK_DURATION, RPC_REQUEST_TIMEOUT
from .exceptions import (
    ConfirmationTimeoutError,
    NoAccountError,
    RpcConnectionError,
    RpcError,
)
from .types import DeploymentTransaction, TransactionReceipt


class RpcClient(Protocol):
    """The node capabilities the deployer consumes."""

    def default_account(self) -> str:
        ...

    def unlock(self, account: str, passphrase: str = "", duration: int = DEFAULT_UNLOCK_DURATION) -> bool:
        ...

    def submit_transaction(self, transaction: DeploymentTransaction) -> str:
        ...

    def wait_for_confirmation(
        self,
        transaction_hash: str,
        timeout: float,
        cancel_event: Optional[threading.Event] = None,
    ) -> TransactionReceipt:
        ...

    def get_code(self, address: str) -> bytes:
        ...

    def get_transaction(self, transaction_hash: str) -> Optional[Dict[str, Any]]:
        ...

    def chain_id(self) -> Optional[int]:
        ...


class JsonRpcClient:
    """RpcClient speaking Ethereum JSON-RPC over HTTP."""

    def __init__(
        self,
        rpc_url: str,
        request_timeout: float = RPC_REQUEST_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the client. No request is made until a method is called.

        Args:
            rpc_url: Node endpoint, e.g. "http://localhost:8545"
            request_timeout: Per-request HTTP timeout in seconds
            poll_interval: Seconds between receipt polls while waiting
            session: Optional requests session to reuse
        """
        self.rpc_url = rpc_url
        self.request_timeout = request_timeout
        self.poll_interval = poll_interval
        self._session = session or requests.Session()
        self._ids = itertools.count(1)

    def call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """
        Make a single JSON-RPC call.

        Args:
            method: RPC method name, e.g. "eth_accounts"
            params: Positional parameters

        Returns:
            The "result" member of the response

        Raises:
            RpcConnectionError: If the node is unreachable, answers with a
                non-200 status or with a body that is not JSON
            RpcError: If the node returns a JSON-RPC error object
        """
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params or [],
            "id": next(self._ids),
        }
        logger.debug(f"RPC {method} -> {self.rpc_url}")

        try:
            response = self._session.post(self.rpc_url, json=payload, timeout=self.request_timeout)
        except requests.RequestException as e:
            raise RpcConnectionError(f"Network error during {method}: {e}") from e

        if response.status_code != 200:
            raise RpcConnectionError(
                f"RPC request {method} failed with status {response.status_code}"
            )

        try:
            result = response.json()
        except ValueError as e:
            raise RpcConnectionError(f"RPC response to {method} is not valid JSON") from e

        if "error" in result:
            error = result["error"]
            if isinstance(error, dict):
                raise RpcError(f"RPC error in {method}: {error.get('message', error)}", error.get("code"))
            raise RpcError(f"RPC error in {method}: {error}")

        return result.get("result")

    def default_account(self) -> str:
        """
        Get the node's first account.

        Raises:
            NoAccountError: If the node manages no accounts or refuses to list them
        """
        try:
            accounts = self.call("eth_accounts")
        except RpcConnectionError:
            raise
        except RpcError as e:
            raise NoAccountError(f"Node refused to list accounts: {e}") from e

        if not accounts:
            raise NoAccountError(f"Node at {self.rpc_url} has no accounts")
        return accounts[0]

    def unlock(self, account: str, passphrase: str = "", duration: int = DEFAULT_UNLOCK_DURATION) -> bool:
        """
        Ask the node to unlock an account.

        Returns:
            True if the node reports success; False on refusal or any RPC failure
        """
        try:
            return bool(self.call("personal_unlockAccount", [account, passphrase, duration]))
        except RpcError as e:
            logger.debug(f"personal_unlockAccount failed for {account}: {e}")
            return False

    def submit_transaction(self, transaction: DeploymentTransaction) -> str:
        """
        Submit a transaction for the node to sign and broadcast.

        Returns:
            Transaction hash

        Raises:
            RpcConnectionError: On transport failure (the caller may retry)
            RpcError: If the node rejects the transaction
        """
        tx_hash = self.call("eth_sendTransaction", [transaction.to_rpc_params()])
        if not isinstance(tx_hash, str):
            raise RpcError(f"eth_sendTransaction returned no transaction hash: {tx_hash!r}")
        return tx_hash

    def get_transaction_receipt(self, transaction_hash: str) -> Optional[TransactionReceipt]:
        """
        Get a transaction's receipt.

        Returns:
            The receipt, or None while the transaction is not yet mined
        """
        data = self.call("eth_getTransactionReceipt", [transaction_hash])
        if not data or data.get("blockNumber") is None:
            return None
        return TransactionReceipt.from_rpc(data)

    def wait_for_confirmation(
        self,
        transaction_hash: str,
        timeout: float,
        cancel_event: Optional[threading.Event] = None,
    ) -> TransactionReceipt:
        """
        Poll for a transaction's receipt until it is mined.

        Transport errors while polling are logged and polling continues.
        Waiting happens on ``cancel_event`` so another thread (or a signal
        handler) can stop it early.

        Args:
            transaction_hash: Hash returned by submit_transaction
            timeout: Maximum seconds to wait
            cancel_event: Set to abandon the wait

        Returns:
            The mined transaction's receipt

        Raises:
            ConfirmationTimeoutError: On timeout or cancellation; the
                transaction may still be mined later
        """
        if cancel_event is None:
            cancel_event = threading.Event()
        deadline = time.monotonic() + timeout

        while True:
            try:
                receipt = self.get_transaction_receipt(transaction_hash)
            except RpcConnectionError as e:
                logger.debug(f"Receipt poll failed, will retry: {e}")
                receipt = None

            if receipt is not None:
                return receipt

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise ConfirmationTimeoutError(
                    f"Transaction {transaction_hash} not confirmed within {timeout:g}s",
                    transaction_hash,
                )
            if cancel_event.wait(min(self.poll_interval, remaining)):
                raise ConfirmationTimeoutError(
                    f"Stopped waiting for transaction {transaction_hash}",
                    transaction_hash,
                    cancelled=True,
                )

    def get_transaction(self, transaction_hash: str) -> Optional[Dict[str, Any]]:
        """Get a transaction as reported by the node (with "from" and "input"), or None if unknown."""
        return self.call("eth_getTransactionByHash", [transaction_hash]) or None

    def get_code(self, address: str) -> bytes:
        """Get the runtime code at an address (empty if none)."""
        code = self.call("eth_getCode", [address, "latest"]) or "0x"
        return bytes.fromhex(code[2:] if code.startswith("0x") else code)

    def chain_id(self) -> Optional[int]:
        """
        Get the chain id, falling back to net_version on nodes without eth_chainId.

        Returns:
            Chain id, or None if the node reports neither
        """
        try:
            return int(self.call("eth_chainId"), 16)
        except RpcConnectionError:
            raise
        except (RpcError, TypeError, ValueError):
            pass

        try:
            return int(self.call("net_version"))
        except RpcConnectionError:
            raise
        except (RpcError, TypeError, ValueError):
            return None
