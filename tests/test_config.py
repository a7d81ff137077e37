"""
Tests for ledger endpoint configuration.

Covers:
- Public defaults
- Environment layering and override precedence
- Validation of URLs and timeout
- Network lookup
"""

import pytest

from nexus_settle.config import (
    DEFAULT_DEVNET_RPC_URL,
    DEFAULT_MAINNET_RPC_URL,
    DEFAULT_TESTNET_RPC_URL,
    DEFAULT_TIMEOUT_SECONDS,
    ENV_DEVNET_RPC_URL,
    ENV_TESTNET_RPC_URL,
    ENV_TIMEOUT_SECONDS,
    ConfigError,
    LedgerEndpoints,
)


class TestDefaults:
    def test_from_empty_environment(self) -> None:
        endpoints = LedgerEndpoints.from_env(environ={})
        assert endpoints.mainnet == DEFAULT_MAINNET_RPC_URL
        assert endpoints.testnet == DEFAULT_TESTNET_RPC_URL
        assert endpoints.devnet == DEFAULT_DEVNET_RPC_URL
        assert endpoints.timeout_seconds == DEFAULT_TIMEOUT_SECONDS

    def test_mapping_covers_supported_networks(self) -> None:
        assert set(LedgerEndpoints().as_mapping()) == {"xrpl:1", "xrpl:testnet", "xrpl:devnet"}


class TestEnvironment:
    def test_environment_values_used(self) -> None:
        endpoints = LedgerEndpoints.from_env(
            environ={
                ENV_TESTNET_RPC_URL: "http://localhost:5005",
                ENV_TIMEOUT_SECONDS: "2.5",
            }
        )
        assert endpoints.testnet == "http://localhost:5005"
        assert endpoints.timeout_seconds == 2.5
        assert endpoints.devnet == DEFAULT_DEVNET_RPC_URL

    def test_overrides_win(self) -> None:
        endpoints = LedgerEndpoints.from_env(
            environ={ENV_DEVNET_RPC_URL: "http://env:5005"},
            overrides={ENV_DEVNET_RPC_URL: "http://override:5005"},
        )
        assert endpoints.devnet == "http://override:5005"

    def test_reads_os_environ_by_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(ENV_TESTNET_RPC_URL, "https://node.example.com/")
        assert LedgerEndpoints.from_env().testnet == "https://node.example.com/"

    def test_url_whitespace_stripped(self) -> None:
        endpoints = LedgerEndpoints.from_env(environ={ENV_TESTNET_RPC_URL: "  http://x:1  "})
        assert endpoints.testnet == "http://x:1"


class TestValidation:
    @pytest.mark.parametrize("url", ["", "   ", "ws://localhost:6006", "localhost:5005"])
    def test_rejects_bad_url(self, url: str) -> None:
        with pytest.raises(ConfigError):
            LedgerEndpoints.from_env(environ={ENV_TESTNET_RPC_URL: url})

    @pytest.mark.parametrize("timeout", ["0", "-1", "abc", "nan"])
    def test_rejects_bad_timeout(self, timeout: str) -> None:
        with pytest.raises(ConfigError):
            LedgerEndpoints.from_env(environ={ENV_TIMEOUT_SECONDS: timeout})

    def test_constructor_validates(self) -> None:
        with pytest.raises(ConfigError):
            LedgerEndpoints(mainnet="ftp://nope")


class TestUrlFor:
    def test_known_network(self) -> None:
        assert LedgerEndpoints().url_for("xrpl:1") == DEFAULT_MAINNET_RPC_URL

    def test_unknown_network(self) -> None:
        with pytest.raises(ValueError):
            LedgerEndpoints().url_for("xrpl:mainnet")
