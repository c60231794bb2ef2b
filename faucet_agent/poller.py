"""Bounded polling for transaction confirmation."""

from __future__ import annotations

import asyncio
import math
from typing import Awaitable, Callable, Optional

from faucet_agent.dispatcher import TransactionDispatcher, TxStatus
from faucet_agent.utils.logging import get_logger

logger = get_logger(__name__)

StatusCallback = Callable[[TxStatus, int], None]


class StatusPoller:
    """Re-checks a transaction at a fixed interval until it settles.

    Gives up with :attr:`TxStatus.TIMED_OUT` after ``timeout`` seconds.
    Cancelling the awaiting task stops polling immediately.
    """

    def __init__(
        self,
        dispatcher: TransactionDispatcher,
        interval: float = 5.0,
        timeout: float = 300.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self.dispatcher = dispatcher
        self.interval = interval
        self.timeout = timeout
        self._sleep = sleep

    @property
    def max_checks(self) -> int:
        """Number of status checks made before giving up, including the first."""
        return 1 + math.ceil(self.timeout / self.interval)

    async def check(self, tx_id: str, network: str) -> TxStatus:
        return await self.dispatcher.status(tx_id, network)

    async def wait(
        self,
        tx_id: str,
        network: str,
        on_update: Optional[StatusCallback] = None,
    ) -> TxStatus:
        """Poll until ``tx_id`` is no longer pending or the timeout passes.

        ``on_update`` receives every observed status with its attempt number,
        starting at 0 for the initial check.
        """
        for attempt in range(self.max_checks):
            if attempt:
                await self._sleep(self.interval)
            status = await self.check(tx_id, network)
            if on_update is not None:
                on_update(status, attempt)
            if status.settled:
                logger.info(
                    "poll_settled",
                    network=network,
                    tx_id=tx_id,
                    status=status.value,
                    attempts=attempt + 1,
                )
                return status

        logger.warning(
            "poll_timed_out",
            network=network,
            tx_id=tx_id,
            timeout=self.timeout,
        )
        return TxStatus.TIMED_OUT


__all__ = ["StatusPoller"]
