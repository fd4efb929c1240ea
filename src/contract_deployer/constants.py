"""Configuration constants for contract-deployer."""

# Defaults used when neither a flag nor an environment variable is set
DEFAULT_RPC_URL = "http://localhost:8545"
DEFAULT_GAS_LIMIT = 4_000_000
DEFAULT_CONFIRMATION_TIMEOUT = 120.0  # seconds
DEFAULT_POLL_INTERVAL = 1.0  # seconds between receipt polls
DEFAULT_RETRY_BACKOFF = 1.0  # seconds before the single submission retry
DEFAULT_UNLOCK_DURATION = 300  # seconds the node keeps the account unlocked
RPC_REQUEST_TIMEOUT = 30  # seconds per HTTP request

# Environment variables consulted as fallback to command-line flags
ENV_RPC_URL = "DEPLOY_RPC_URL"
ENV_GAS_LIMIT = "DEPLOY_GAS_LIMIT"
ENV_CONFIRMATION_TIMEOUT = "DEPLOY_CONFIRMATION_TIMEOUT"
ENV_SOLC_VERSION = "DEPLOY_SOLC_VERSION"
ENV_ACCOUNT_PASSWORD = "DEPLOY_ACCOUNT_PASSWORD"
ENV_RECORD_FILE = "DEPLOY_RECORD_FILE"
ENV_LOG_LEVEL = "DEPLOY_LOG_LEVEL"

# CLI exit codes
EXIT_OK = 0
EXIT_COMPILE_ERROR = 1
EXIT_SUBMISSION_ERROR = 2
EXIT_VALIDATION_ERROR = 3
