"""Custom exception classes for contract-deployer."""

from typing import Any, Iterable, List, Optional, Sequence


class DeploymentError(Exception):
    """Base exception for deployment-related errors."""

    kind = "deployment_error"


class ConfigurationError(DeploymentError, ValueError):
    """Raised when a required setting is missing or malformed."""

    kind = "configuration_error"


class SourceNotFoundError(DeploymentError, FileNotFoundError):
    """Raised when the contract source file does not exist."""

    kind = "source_not_found"


class SourceReadError(DeploymentError, OSError):
    """Raised when the contract source file exists but cannot be read."""

    kind = "source_read_error"


class CompileError(DeploymentError):
    """Raised when the compiler rejects the source.

    ``diagnostics`` holds the parsed compiler messages so callers can point at
    the offending file and line instead of dumping raw compiler output.
    """

    kind = "compile_error"

    def __init__(self, message: str, diagnostics: Optional[Iterable[Any]] = None):
        super().__init__(message)
        self.diagnostics: List[Any] = list(diagnostics or [])


class ContractNotFoundError(DeploymentError, ValueError):
    """Raised when the requested contract is not in the compiled output."""

    kind = "contract_not_found"

    def __init__(self, name: str, available: Sequence[str] = ()):
        available_text = ", ".join(sorted(available)) or "none"
        super().__init__(
            f"Contract '{name}' not found in compiled output (available: {available_text})"
        )
        self.name = name
        self.available = list(available)


class ArgumentMismatchError(DeploymentError, ValueError):
    """Raised when constructor arguments do not match the constructor signature."""

    kind = "argument_mismatch"

    def __init__(
        self,
        message: str,
        expected: Optional[Sequence[str]] = None,
        received: Optional[Sequence[Any]] = None,
    ):
        super().__init__(message)
        self.expected = list(expected or [])
        self.received = list(received or [])


class NoAccountError(DeploymentError, LookupError):
    """Raised when the node exposes no account to deploy from."""

    kind = "no_account"


class RpcError(DeploymentError):
    """Raised when the node answers a request with a JSON-RPC error object."""

    kind = "rpc_error"

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code


class RpcConnectionError(RpcError, ConnectionError):
    """Raised when the node cannot be reached or returns a non-200 response."""

    kind = "rpc_connection_error"


class SubmissionError(DeploymentError):
    """Raised when the deployment transaction is rejected or reverts."""

    kind = "submission_error"

    def __init__(self, message: str, transaction_hash: Optional[str] = None):
        super().__init__(message)
        self.transaction_hash = transaction_hash


class ConfirmationTimeoutError(DeploymentError, TimeoutError):
    """Raised when a transaction is not confirmed within the allotted time."""

    kind = "confirmation_timeout"

    def __init__(self, message: str, transaction_hash: str, cancelled: bool = False):
        super().__init__(message)
        self.transaction_hash = transaction_hash
        self.cancelled = cancelled


class DeploymentPendingError(ConfirmationTimeoutError):
    """Raised when a submitted deployment has not been confirmed yet.

    The transaction may still be mined; poll with ``transaction_hash``
    instead of deploying again.
    """

    kind = "deployment_pending"
