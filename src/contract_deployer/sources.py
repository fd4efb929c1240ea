"""Contract source loading for contract-deployer."""

from pathlib import Path
from typing import Union

from loguru import logger

from .exceptions import SourceNotFoundError, SourceReadError


def load_source(path: Union[str, Path], encoding: str = "utf-8") -> str:
    """
    Read a contract source file and return its text.

    Args:
        path: Path to the source file
        encoding: Text encoding of the file

    Returns:
        Full file content, unparsed

    Raises:
        SourceNotFoundError: If the file does not exist
        SourceReadError: If the file exists but cannot be read or decoded
    """
    source_path = Path(path)
    if not source_path.exists():
        raise SourceNotFoundError(f"Contract source not found at {source_path}")

    try:
        text = source_path.read_text(encoding=encoding)
    except (OSError, UnicodeDecodeError) as e:
        raise SourceReadError(f"Failed to read contract source {source_path}: {e}") from e

    logger.debug(f"Loaded {len(text)} characters from {source_path}")
    return text
