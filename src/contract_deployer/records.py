"""Durable deployment records for contract-deployer."""

import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from loguru import logger

from .exceptions import ConfigurationError
from .types import DeploymentRecord, jsonable

RECORD_DIR_NAME = ".contract-deployer"
RECORD_FILE_NAME = "deployments.json"


def default_record_path() -> Path:
    """Record file used when none is configured: ./.contract-deployer/deployments.json"""
    return Path.cwd() / RECORD_DIR_NAME / RECORD_FILE_NAME


class DeploymentStore:
    """
    JSON file of confirmed deployments, grouped by chain and contract name.

    File layout::

        {
          "metadata": {"updated_at": "..."},
          "chains": {"<chain id>": {"<contract name>": [<record>, ...]}}
        }

    Records are appended in confirmation order, so the last entry of a list
    is the most recent deployment.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        """
        Load the store. A missing file yields an empty store.

        Args:
            path: Path to the record file
                  If None, uses ./.contract-deployer/deployments.json
        """
        self.path = Path(path) if path is not None else default_record_path()
        self._lock = threading.Lock()
        self._data = self._load()

    def _load(self) -> Dict[str, Any]:
        try:
            with open(self.path) as f:
                data = json.load(f)
        except FileNotFoundError:
            return {"metadata": {}, "chains": {}}
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring unreadable deployment record file {self.path}: {e}")
            return {"metadata": {}, "chains": {}}
        except OSError as e:
            # e.g. a parent of the path is a regular file, or the path is a directory
            raise ConfigurationError(f"Cannot use {self.path} as a deployment record file: {e}") from e

        data.setdefault("metadata", {})
        data.setdefault("chains", {})
        return data

    @staticmethod
    def _chain_key(chain_id: Optional[int]) -> str:
        # JSON object keys must be strings
        return str(chain_id) if chain_id is not None else "unknown"

    def records(self, contract_name: str, chain_id: Optional[int] = None) -> List[DeploymentRecord]:
        """
        Get all stored deployments of a contract on a chain, oldest first.

        Args:
            contract_name: Contract name
            chain_id: Chain id (None for nodes that do not report one)
        """
        chain = self._data["chains"].get(self._chain_key(chain_id), {})
        return [DeploymentRecord.from_dict(entry) for entry in chain.get(contract_name, [])]

    def latest(self, contract_name: str, chain_id: Optional[int] = None) -> Optional[DeploymentRecord]:
        """Get the most recent deployment of a contract, if any."""
        records = self.records(contract_name, chain_id)
        return records[-1] if records else None

    def find_matching(
        self,
        contract_name: str,
        chain_id: Optional[int],
        bytecode_hash: str,
        constructor_args: Sequence[Any],
    ) -> Optional[DeploymentRecord]:
        """
        Find the most recent deployment of identical bytecode and arguments.

        Args:
            contract_name: Contract name
            chain_id: Chain id
            bytecode_hash: sha256 hex digest of the creation bytecode
            constructor_args: Coerced constructor arguments

        Returns:
            Matching record, or None
        """
        wanted_args = [jsonable(arg) for arg in constructor_args]
        for record in reversed(self.records(contract_name, chain_id)):
            if record.bytecode_hash == bytecode_hash and record.to_dict()["constructor_args"] == wanted_args:
                return record
        return None

    def add(self, record: DeploymentRecord) -> None:
        """Append a record and write the file."""
        with self._lock:
            chain = self._data["chains"].setdefault(self._chain_key(record.chain_id), {})
            chain.setdefault(record.contract_name, []).append(record.to_dict())
            self._data["metadata"]["updated_at"] = datetime.now(timezone.utc).strftime(
                "%Y-%m-%d %H:%M:%S UTC"
            )
            self.save()

    def save(self) -> None:
        """
        Write the store to disk.

        Creates parent directories if they don't exist.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(self._data, f, indent=2)
