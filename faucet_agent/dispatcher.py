"""Native-currency transfers and receipt lookups per network."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from eth_account.signers.local import LocalAccount
from web3.exceptions import TransactionNotFound

from faucet_agent.errors import InsufficientFunds, UnknownNetwork
from faucet_agent.networks import NetworkConfig, NetworkRegistry
from faucet_agent.utils.logging import get_logger
from faucet_agent.utils.units import format_units, normalize_amount, to_base_units

logger = get_logger(__name__)


class TxStatus(Enum):
    """Confirmation state of a submitted transaction."""

    PENDING = "Pending"
    SUCCESS = "Success"
    FAILED = "Failed"
    UNKNOWN = "Unknown"
    TIMED_OUT = "Timed out"  # Poller gave up while still pending

    @property
    def settled(self) -> bool:
        return self is not TxStatus.PENDING


@dataclass
class DispatchResult:
    """Outcome of one network request."""

    network: str
    tx_id: Optional[str] = None
    status: Optional[TxStatus] = None
    error: Optional[str] = None
    amount: Optional[str] = None
    symbol: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.tx_id is not None

    @classmethod
    def success(
        cls,
        network: str,
        tx_id: str,
        status: TxStatus,
        amount: Optional[str] = None,
        symbol: Optional[str] = None,
    ) -> "DispatchResult":
        return cls(network=network, tx_id=tx_id, status=status, amount=amount, symbol=symbol)

    @classmethod
    def failure(
        cls,
        network: str,
        message: str,
        amount: Optional[str] = None,
        symbol: Optional[str] = None,
    ) -> "DispatchResult":
        return cls(network=network, error=message, amount=amount, symbol=symbol)


class TransactionDispatcher:
    """Sends faucet transfers from one account on any registered network."""

    def __init__(self, registry: NetworkRegistry, account: LocalAccount) -> None:
        self.registry = registry
        self.account = account

    @property
    def address(self) -> str:
        return self.account.address

    def _resolve(self, network_name: str) -> NetworkConfig:
        config = self.registry.lookup(network_name)
        if config is None:
            raise UnknownNetwork(network_name)
        return config

    async def balance(self, network_name: str) -> int:
        """Return the faucet balance on ``network_name`` in base units."""
        config = self._resolve(network_name)
        return await config.client.eth.get_balance(self.account.address)

    async def dispatch(self, recipient: str, amount: str, network_name: str) -> str:
        """Send ``amount`` of the native currency to ``recipient``.

        Not retried: a failure is raised to the caller as-is.

        Raises:
            UnknownNetwork: ``network_name`` is not registered.
            InvalidAmount: ``amount`` is not representable on the chain.
            InsufficientFunds: The faucet balance is below ``amount``.
        """
        config = self._resolve(network_name)
        decimals = config.chain.decimals
        value = to_base_units(amount, decimals)

        balance = await config.client.eth.get_balance(self.account.address)
        if balance < value:
            raise InsufficientFunds(
                network=config.name,
                balance=format_units(balance, decimals),
                requested=normalize_amount(amount),
                symbol=config.chain.symbol,
            )

        signer = config.signer(self.account)
        tx_id = await signer.send_native(recipient, value)
        logger.info(
            "dispatch_submitted",
            network=config.name,
            recipient=recipient,
            value=value,
            tx_id=tx_id,
        )
        return tx_id

    async def status(self, tx_id: str, network_name: str) -> TxStatus:
        """Classify the receipt of ``tx_id``; never raises."""
        config = self.registry.lookup(network_name)
        if config is None:
            logger.warning("status_unknown_network", network=network_name)
            return TxStatus.UNKNOWN

        try:
            receipt = await config.client.eth.get_transaction_receipt(tx_id)
        except TransactionNotFound:
            return TxStatus.PENDING
        except Exception as exc:
            logger.warning(
                "status_lookup_failed",
                network=network_name,
                tx_id=tx_id,
                error=str(exc),
            )
            return TxStatus.UNKNOWN

        if receipt is None:
            return TxStatus.PENDING
        return TxStatus.SUCCESS if receipt["status"] == 1 else TxStatus.FAILED


__all__ = ["DispatchResult", "TransactionDispatcher", "TxStatus"]
