"""Solidity compilation for contract-deployer."""

import re
from typing import Any, Dict, List, Mapping, Protocol

import requests
import solcx
from loguru import logger
from solcx.exceptions import SolcError, SolcInstallationError, SolcNotInstalled

from .exceptions import CompileError
from .types import CompiledContract, Diagnostic

# "<stdin>:5:5: ParserError: Expected ';' but got '}'" (solc < 0.6)
_INLINE_LOCATION_RE = re.compile(
    r"^(?P<file>[^\s:]*):(?P<line>\d+):(?P<column>\d+): (?P<type>\w+): (?P<message>.*)$"
)
# "ParserError: Expected ';' but got '}'" followed by " --> <stdin>:5:5:"
_HEADER_RE = re.compile(r"^(?P<type>\w*(?:Error|Warning)): (?P<message>.*)$")
_ARROW_LOCATION_RE = re.compile(r"^\s*-->\s*(?P<file>[^\s:]*):(?P<line>\d+):(?P<column>\d+):?")


class Compiler(Protocol):
    """Anything that turns source text into compiled contracts."""

    def compile(self, source: str, language_version: str) -> Dict[str, CompiledContract]:
        """
        Compile a source.

        Returns:
            Mapping of contract name to compiled contract

        Raises:
            CompileError: With structured diagnostics if compilation fails
        """
        ...


class SolcCompiler:
    """Compiler backed by the solc binaries managed by py-solc-x."""

    def __init__(self, install: bool = True):
        """
        Args:
            install: Download the requested solc release if it is missing
        """
        self.install = install

    def compile(self, source: str, language_version: str) -> Dict[str, CompiledContract]:
        if self.install:
            self._ensure_installed(language_version)

        logger.info(f"Compiling with solc {language_version}")
        try:
            output = solcx.compile_source(
                source,
                output_values=["abi", "bin"],
                solc_version=language_version,
            )
        except SolcNotInstalled as e:
            raise CompileError(
                f"solc {language_version} is not installed",
                [
                    Diagnostic(
                        message=f"solc {language_version} is not installed; "
                        "run without --no-install to download it"
                    )
                ],
            ) from e
        except SolcError as e:
            diagnostics = parse_solc_diagnostics(e.stderr_data or "")
            errors = [d for d in diagnostics if d.severity == "error"]
            summary = f"{len(errors)} error(s)" if errors else "see compiler output"
            raise CompileError(f"Compilation failed: {summary}", diagnostics) from e

        return build_contract_map(output)

    def _ensure_installed(self, version: str) -> None:
        installed = [str(v) for v in solcx.get_installed_solc_versions()]
        if version in installed:
            return

        logger.info(f"Installing solc {version}")
        try:
            solcx.install_solc(version)
        except (SolcInstallationError, requests.RequestException, ValueError) as e:
            raise CompileError(
                f"Failed to install solc {version}: {e}",
                [Diagnostic(message=f"solc {version} is not available: {e}")],
            ) from e


def build_contract_map(output: Mapping[str, Mapping[str, Any]]) -> Dict[str, CompiledContract]:
    """
    Convert raw compiler output into CompiledContract objects.

    Contracts without creation bytecode (interfaces, abstract contracts) are
    left out since they cannot be deployed.

    Args:
        output: Mapping of compiler keys (e.g. "<stdin>:VotedAdmins") to
                dicts with "abi" and "bin" entries

    Returns:
        Mapping of normalized contract name to CompiledContract

    Raises:
        CompileError: If a contract's bytecode still references unlinked libraries
    """
    contracts: Dict[str, CompiledContract] = {}

    for key, data in output.items():
        name = normalize_contract_name(key)
        bytecode_hex = data.get("bin", "")
        if bytecode_hex.startswith("0x"):
            bytecode_hex = bytecode_hex[2:]

        if not bytecode_hex:
            logger.debug(f"Skipping {name}: no creation bytecode")
            continue

        try:
            bytecode = bytes.fromhex(bytecode_hex)
        except ValueError as e:
            raise CompileError(
                f"Contract '{name}' has unlinked library references",
                [Diagnostic(message=f"{name}: bytecode contains library placeholders")],
            ) from e

        contracts[name] = CompiledContract(name=name, bytecode=bytecode, abi=list(data.get("abi", [])))

    return contracts


def normalize_contract_name(key: str) -> str:
    """
    Strip the source-unit prefix from a compiler output key.

    Args:
        key: Compiler key, e.g. "<stdin>:VotedAdmins", ":VotedAdmins"
             or "VotedAdmins"

    Returns:
        Bare contract name
    """
    return key.rsplit(":", 1)[-1]


def parse_solc_diagnostics(stderr: str) -> List[Diagnostic]:
    """
    Parse solc's human-readable error output into Diagnostic objects.

    Both the single-line format of older releases and the multi-line
    " --> file:line:col:" format of newer ones are recognized. Output that
    matches neither becomes one location-less diagnostic.

    Args:
        stderr: Raw compiler error output

    Returns:
        List of diagnostics in output order
    """
    diagnostics: List[Diagnostic] = []
    lines = stderr.splitlines()

    i = 0
    while i < len(lines):
        line = lines[i]

        inline = _INLINE_LOCATION_RE.match(line)
        if inline:
            diagnostics.append(
                Diagnostic(
                    message=f"{inline.group('type')}: {inline.group('message')}",
                    file=inline.group("file") or None,
                    line=int(inline.group("line")),
                    column=int(inline.group("column")),
                    severity=_severity(inline.group("type")),
                )
            )
            i += 1
            continue

        header = _HEADER_RE.match(line)
        if header:
            file = None
            line_no = None
            column = None
            if i + 1 < len(lines):
                arrow = _ARROW_LOCATION_RE.match(lines[i + 1])
                if arrow:
                    file = arrow.group("file") or None
                    line_no = int(arrow.group("line"))
                    column = int(arrow.group("column"))
                    i += 1
            diagnostics.append(
                Diagnostic(
                    message=f"{header.group('type')}: {header.group('message')}",
                    file=file,
                    line=line_no,
                    column=column,
                    severity=_severity(header.group("type")),
                )
            )

        i += 1

    if not diagnostics and stderr.strip():
        diagnostics.append(Diagnostic(message=stderr.strip().splitlines()[0]))

    return diagnostics


def _severity(message_type: str) -> str:
    return "warning" if message_type.endswith("Warning") else "error"
