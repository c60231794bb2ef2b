"""Shared fakes: in-process chain clients and a scripted interpreter."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Union

import pytest
from eth_account import Account

from faucet_agent.networks import ChainParams, NetworkRegistry, build_registry

# Well-known throwaway key from the eth-account documentation
TEST_PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
RECIPIENT = "0x2d6DA915F00dcA50b06a60fca010949382f4e0e8"
TX_HASH = "0x" + "ab" * 32


class FakeEth:
    """Subset of ``AsyncWeb3.eth`` used by the faucet."""

    def __init__(self, balance: int = 10**21) -> None:
        self.balance = balance
        self.nonce = 7
        self.receipts: List[Any] = []
        self.default_receipt: Any = {"status": 1}
        self.send_error: Optional[Exception] = None
        self.balance_error: Optional[Exception] = None
        self.sent: List[bytes] = []
        self.estimates: List[Dict[str, Any]] = []
        self.receipt_queries: List[str] = []

    async def get_balance(self, address: str) -> int:
        if self.balance_error is not None:
            raise self.balance_error
        return self.balance

    async def get_transaction_count(self, address: str, block: str = "latest") -> int:
        return self.nonce

    @property
    def gas_price(self):
        async def _gas_price() -> int:
            return 2_000_000_000

        return _gas_price()

    async def estimate_gas(self, tx: Dict[str, Any]) -> int:
        self.estimates.append(tx)
        return 21000

    async def send_raw_transaction(self, raw: bytes) -> bytes:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(bytes(raw))
        return bytes.fromhex(TX_HASH[2:])

    async def get_transaction_receipt(self, tx_hash: str) -> Any:
        self.receipt_queries.append(tx_hash)
        outcome = self.receipts.pop(0) if self.receipts else self.default_receipt
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeClient:
    def __init__(self, chain: ChainParams) -> None:
        self.chain = chain
        self.eth = FakeEth()


class FakeInterpreter:
    """Returns scripted model output and records every call."""

    def __init__(self, response: Union[str, Callable[[str], str]] = "") -> None:
        self.response = response
        self.calls: List[Dict[str, str]] = []

    async def interpret(self, system_prompt: str, message: str) -> str:
        self.calls.append({"system_prompt": system_prompt, "message": message})
        if callable(self.response):
            return self.response(message)
        return self.response


@pytest.fixture
def registry() -> NetworkRegistry:
    """Default catalog backed by fake clients."""
    return build_registry(client_factory=FakeClient)


@pytest.fixture
def account():
    return Account.from_key(TEST_PRIVATE_KEY)


@pytest.fixture
def recipient() -> str:
    return RECIPIENT


@pytest.fixture
def interpreter_factory() -> Callable[..., FakeInterpreter]:
    return FakeInterpreter


@pytest.fixture
def tx_hash() -> str:
    return TX_HASH
