"""
contract-deployer: compile a Solidity contract and deploy it with a verifiable record
"""

from importlib.metadata import PackageNotFoundError, version

from .compiler import Compiler, SolcCompiler
from .deployer import Deployer
from .exceptions import (
    ArgumentMismatchError,
    CompileError,
    ConfigurationError,
    ConfirmationTimeoutError,
    ContractNotFoundError,
    DeploymentError,
    DeploymentPendingError,
    NoAccountError,
    RpcConnectionError,
    RpcError,
    SourceNotFoundError,
    SourceReadError,
    SubmissionError,
)
from .records import DeploymentStore
from .rpc import JsonRpcClient, RpcClient
from .sources import load_source
from .types import CompiledContract, DeploymentRecord, Diagnostic

try:
    __version__ = version("contract-deployer")
except PackageNotFoundError:
    __version__ = None

__all__ = [
    "Deployer",
    "DeploymentStore",
    "Compiler",
    "SolcCompiler",
    "RpcClient",
    "JsonRpcClient",
    "load_source",
    "CompiledContract",
    "DeploymentRecord",
    "Diagnostic",
    "DeploymentError",
    "ConfigurationError",
    "SourceNotFoundError",
    "SourceReadError",
    "CompileError",
    "ContractNotFoundError",
    "ArgumentMismatchError",
    "NoAccountError",
    "RpcError",
    "RpcConnectionError",
    "SubmissionError",
    "ConfirmationTimeoutError",
    "DeploymentPendingError",
]
