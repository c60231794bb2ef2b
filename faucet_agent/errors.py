"""Error types raised by the faucet pipeline."""

from __future__ import annotations

from typing import Optional


class FaucetError(Exception):
    """Base class for faucet errors."""


class ConfigError(FaucetError):
    """Startup configuration is missing or malformed."""


class UnderstandingFailure(FaucetError):
    """The language model declined to interpret the request."""


class MalformedResponse(FaucetError):
    """Model output could not be coerced into an intent."""

    def __init__(self, message: str, raw: Optional[str] = None) -> None:
        super().__init__(message)
        self.raw = raw


class UnknownNetwork(FaucetError):
    """A request named a network that is not in the registry."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown network: {name}")
        self.name = name


class InvalidAmount(FaucetError):
    """Requested amount is not a positive value representable on-chain."""


class InsufficientFunds(FaucetError):
    """The faucet wallet cannot cover the requested transfer."""

    def __init__(
        self,
        network: str,
        balance: str,
        requested: str,
        symbol: str,
    ) -> None:
        super().__init__(
            f"Insufficient funds on {network}. "
            f"Balance: {balance} {symbol}, Trying to send: {requested} {symbol}"
        )
        self.network = network
        self.balance = balance
        self.requested = requested
        self.symbol = symbol


__all__ = [
    "ConfigError",
    "FaucetError",
    "InsufficientFunds",
    "InvalidAmount",
    "MalformedResponse",
    "UnderstandingFailure",
    "UnknownNetwork",
]
