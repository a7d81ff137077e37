"""
Ledger endpoint configuration.

Everything is an explicit constructor argument. LedgerEndpoints.from_env()
layers the environment on top of public defaults, with explicit overrides
winning:

    X402_XRPL_MAINNET_RPC_URL      xrpl:1
    X402_XRPL_TESTNET_RPC_URL      xrpl:testnet
    X402_XRPL_DEVNET_RPC_URL       xrpl:devnet
    X402_XRPL_RPC_TIMEOUT_SECONDS  request timeout (float, > 0)
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

DEFAULT_MAINNET_RPC_URL = "https://xrplcluster.com/"
DEFAULT_TESTNET_RPC_URL = "https://s.altnet.rippletest.net:51234/"
DEFAULT_DEVNET_RPC_URL = "https://s.devnet.rippletest.net:51234/"
DEFAULT_TIMEOUT_SECONDS = 30.0

ENV_MAINNET_RPC_URL = "X402_XRPL_MAINNET_RPC_URL"
ENV_TESTNET_RPC_URL = "X402_XRPL_TESTNET_RPC_URL"
ENV_DEVNET_RPC_URL = "X402_XRPL_DEVNET_RPC_URL"
ENV_TIMEOUT_SECONDS = "X402_XRPL_RPC_TIMEOUT_SECONDS"


class ConfigError(Exception):
    """Raised when the supplied configuration is invalid."""


def _normalize_url(raw: str, field_name: str) -> str:
    value = raw.strip()
    if not value:
        raise ConfigError(f"{field_name} must not be empty")
    if not value.startswith(("http://", "https://")):
        raise ConfigError(f"{field_name} must be an http(s) URL, got: {value!r}")
    return value


def _parse_timeout(raw: str | float) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{ENV_TIMEOUT_SECONDS} must be a number, got: {raw!r}") from exc
    if not value > 0:
        raise ConfigError(f"{ENV_TIMEOUT_SECONDS} must be > 0, got: {raw!r}")
    return value


@dataclass(frozen=True)
class LedgerEndpoints:
    """JSON-RPC endpoints per supported network."""

    mainnet: str = DEFAULT_MAINNET_RPC_URL
    testnet: str = DEFAULT_TESTNET_RPC_URL
    devnet: str = DEFAULT_DEVNET_RPC_URL
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        _normalize_url(self.mainnet, "mainnet")
        _normalize_url(self.testnet, "testnet")
        _normalize_url(self.devnet, "devnet")
        _parse_timeout(self.timeout_seconds)

    def as_mapping(self) -> dict[str, str]:
        return {
            "xrpl:1": self.mainnet,
            "xrpl:testnet": self.testnet,
            "xrpl:devnet": self.devnet,
        }

    def url_for(self, network: str) -> str:
        """Endpoint for a network identifier.

        Raises:
            ValueError: If the network is not supported.
        """
        try:
            return self.as_mapping()[network]
        except KeyError:
            raise ValueError(f"unsupported network: {network!r}") from None

    @classmethod
    def from_env(
        cls,
        *,
        environ: Mapping[str, str] | None = None,
        overrides: Mapping[str, str] | None = None,
    ) -> LedgerEndpoints:
        """Build endpoints from the environment.

        ``environ`` defaults to :data:`os.environ`. ``overrides`` always win.
        """
        merged: dict[str, str] = dict(os.environ if environ is None else environ)
        if overrides:
            merged.update(overrides)

        return cls(
            mainnet=_normalize_url(
                merged.get(ENV_MAINNET_RPC_URL, DEFAULT_MAINNET_RPC_URL),
                ENV_MAINNET_RPC_URL,
            ),
            testnet=_normalize_url(
                merged.get(ENV_TESTNET_RPC_URL, DEFAULT_TESTNET_RPC_URL),
                ENV_TESTNET_RPC_URL,
            ),
            devnet=_normalize_url(
                merged.get(ENV_DEVNET_RPC_URL, DEFAULT_DEVNET_RPC_URL),
                ENV_DEVNET_RPC_URL,
            ),
            timeout_seconds=_parse_timeout(
                merged.get(ENV_TIMEOUT_SECONDS, str(DEFAULT_TIMEOUT_SECONDS))
            ),
        )
