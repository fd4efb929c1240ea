"""Compiler version resolution for contract-deployer."""

import re
from typing import Optional

from .exceptions import ConfigurationError

# Matches e.g. "pragma solidity ^0.4.18;" or "pragma solidity >=0.8.0 <0.9.0;"
_PRAGMA_RE = re.compile(r"^\s*pragma\s+solidity\s+([^;]+);", re.MULTILINE)
_VERSION_RE = re.compile(r"^(\^|~|>=|=)?\s*v?(\d+\.\d+\.\d+)$")


def parse_pragma_version(source: str) -> Optional[str]:
    """
    Derive a concrete compiler version from a source's pragma directive.

    Only the first constraint of the first pragma is considered. Exact
    (``0.8.19``, ``=0.8.19``), caret, tilde and lower-bound constraints
    resolve to the version they name, which is always the lowest release
    satisfying them.

    Args:
        source: Contract source text

    Returns:
        Version string (e.g. "0.4.18"), or None if the source has no
        usable pragma
    """
    match = _PRAGMA_RE.search(source)
    if match is None:
        return None

    tokens = match.group(1).split()
    if not tokens:
        return None

    constraint = tokens[0]
    # Operator written apart from its version, e.g. ">= 0.8.0"
    if constraint in ("^", "~", ">=", "=") and len(tokens) > 1:
        constraint += tokens[1]

    version_match = _VERSION_RE.match(constraint)
    if version_match is None:
        return None
    return version_match.group(2)


def resolve_solc_version(source: str, requested: Optional[str] = None) -> str:
    """
    Pick the compiler version to use for a source.

    Args:
        source: Contract source text
        requested: Explicit version; wins over the pragma when given

    Returns:
        Version string without a leading "v"

    Raises:
        ConfigurationError: If no version was requested and the source has
            no usable pragma
    """
    if requested:
        return requested.lstrip("v")

    version = parse_pragma_version(source)
    if version is None:
        raise ConfigurationError(
            "Cannot determine compiler version: source has no 'pragma solidity' "
            "directive. Pass --solc-version or set $DEPLOY_SOLC_VERSION."
        )
    return version
