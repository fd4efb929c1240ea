"""Unit tests for compiler version resolution."""

import pytest

from contract_deployer.exceptions import ConfigurationError
from contract_deployer.versions import parse_pragma_version, resolve_solc_version


class TestParsePragmaVersion:
    """Test the parse_pragma_version function."""

    @pytest.mark.parametrize(
        "pragma,expected",
        [
            ("pragma solidity ^0.4.18;", "0.4.18"),
            ("pragma solidity 0.8.19;", "0.8.19"),
            ("pragma solidity =0.8.19;", "0.8.19"),
            ("pragma solidity ~0.5.2;", "0.5.2"),
            ("pragma solidity >=0.8.0 <0.9.0;", "0.8.0"),
            ("pragma solidity >= 0.8.0;", "0.8.0"),
        ],
    )
    def test_resolves_supported_constraints(self, pragma: str, expected: str):
        """Test that each supported constraint resolves to the version it names."""
        source = f"// SPDX-License-Identifier: MIT\n{pragma}\n\ncontract A {{}}\n"
        assert parse_pragma_version(source) == expected

    def test_uses_first_pragma(self):
        """Test that only the first pragma is considered."""
        source = "pragma solidity ^0.4.18;\npragma solidity ^0.5.0;\n"
        assert parse_pragma_version(source) == "0.4.18"

    def test_returns_none_without_pragma(self):
        """Test that a source without pragma yields None."""
        assert parse_pragma_version("contract A {}") is None

    def test_returns_none_for_unsupported_constraint(self):
        """Test that a constraint naming no concrete lower bound yields None."""
        assert parse_pragma_version("pragma solidity >0.4.0;") is None

    def test_ignores_other_pragmas(self):
        """Test that non-solidity pragmas are skipped."""
        source = "pragma experimental ABIEncoderV2;\npragma solidity ^0.4.24;\n"
        assert parse_pragma_version(source) == "0.4.24"


class TestResolveSolcVersion:
    """Test the resolve_solc_version function."""

    def test_requested_version_wins(self, voted_admins_source: str):
        """Test that an explicit version overrides the pragma."""
        assert resolve_solc_version(voted_admins_source, "0.4.26") == "0.4.26"

    def test_strips_leading_v(self):
        """Test that "v0.8.19" is accepted."""
        assert resolve_solc_version("", "v0.8.19") == "0.8.19"

    def test_falls_back_to_pragma(self, voted_admins_source: str):
        """Test that the pragma is used when no version is requested."""
        assert resolve_solc_version(voted_admins_source) == "0.4.18"

    def test_raises_without_pragma_or_request(self):
        """Test that an undeterminable version raises ConfigurationError."""
        with pytest.raises(ConfigurationError) as exc_info:
            resolve_solc_version("contract A {}")

        assert "--solc-version" in str(exc_info.value)
