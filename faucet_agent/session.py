"""One-line-at-a-time faucet session: parse, dispatch, poll, report."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from faucet_agent.dispatcher import DispatchResult, TransactionDispatcher, TxStatus
from faucet_agent.errors import FaucetError, MalformedResponse, UnderstandingFailure
from faucet_agent.intent_parser import Intent, IntentParser, NetworkRequest
from faucet_agent.networks import NetworkRegistry
from faucet_agent.poller import StatusPoller
from faucet_agent.selector import select_networks
from faucet_agent.utils.logging import bind_context, clear_context, get_logger

logger = get_logger(__name__)

SEND_KEYWORD = "send"
NO_TRANSACTION_MESSAGE = "No transaction requested. Please specify a transaction."
NOT_UNDERSTOOD_MESSAGE = "I could not understand your request"
MALFORMED_MESSAGE = "Could not read the transfer details from the model response."
NO_NETWORKS_MESSAGE = "No known network found in your request."

Notify = Callable[[str], None]


class SessionState(Enum):
    IDLE = "idle"
    PROCESSING = "processing"


@dataclass
class SessionReport:
    """Everything produced while handling one input line."""

    input: str
    intent: Optional[Intent] = None
    results: List[DispatchResult] = field(default_factory=list)
    message: Optional[str] = None

    @property
    def handled(self) -> bool:
        return self.intent is not None


def resolve_requests(
    intent: Intent,
    raw_text: str,
    registry: NetworkRegistry,
) -> List[NetworkRequest]:
    """Return the requests to dispatch, filling symbols from the registry.

    Requests the model listed are kept in order. If it listed none, networks
    are selected from ``raw_text``.
    """
    if intent.networks:
        requests = []
        for request in intent.networks:
            config = registry.lookup(request.network)
            if config is not None and not request.symbol:
                request = NetworkRequest(
                    network=request.network,
                    amount=request.amount,
                    symbol=config.faucet.symbol,
                )
            requests.append(request)
        return requests

    requests = []
    for name in select_networks(raw_text, registry.list()):
        config = registry.lookup(name)
        if config is None:  # pragma: no cover - selector only returns known names
            continue
        requests.append(
            NetworkRequest(
                network=name,
                amount=intent.default_amount or config.faucet.amount,
                symbol=config.faucet.symbol,
            )
        )
    return requests


class FaucetSession:
    """Runs the Parser -> Selector -> Dispatcher -> Poller pipeline.

    Calls to :meth:`handle` are serialized: a line that arrives while another
    is processing waits for it to finish.
    """

    def __init__(
        self,
        parser: IntentParser,
        registry: NetworkRegistry,
        dispatcher: TransactionDispatcher,
        poller: StatusPoller,
        require_send_keyword: bool = True,
        wait_for_confirmation: bool = True,
        notify: Optional[Notify] = None,
    ) -> None:
        self.parser = parser
        self.registry = registry
        self.dispatcher = dispatcher
        self.poller = poller
        self.require_send_keyword = require_send_keyword
        self.wait_for_confirmation = wait_for_confirmation
        self._notify = notify
        self._lock = asyncio.Lock()
        self.state = SessionState.IDLE

    def _emit(self, message: str) -> None:
        if self._notify is not None:
            self._notify(message)

    async def handle(self, line: str) -> SessionReport:
        """Process one line of user input to completion."""
        async with self._lock:
            self.state = SessionState.PROCESSING
            clear_context()
            try:
                return await self._handle(line.strip())
            finally:
                clear_context()
                self.state = SessionState.IDLE

    async def _handle(self, text: str) -> SessionReport:
        report = SessionReport(input=text)
        if not text:
            return report

        if self.require_send_keyword and SEND_KEYWORD not in text.lower():
            report.message = NO_TRANSACTION_MESSAGE
            return report

        try:
            intent = await self.parser.parse(text, self.registry.list())
        except UnderstandingFailure as exc:
            report.message = f"{NOT_UNDERSTOOD_MESSAGE}: {exc}"
            return report
        except MalformedResponse:
            report.message = MALFORMED_MESSAGE
            return report

        report.intent = intent
        bind_context(recipient=intent.recipient)
        self._emit(f"AI Response: {intent.explanation}")
        for warning in intent.warnings:
            self._emit(f"Note: {warning}")

        requests = resolve_requests(intent, text, self.registry)
        if not requests:
            report.message = NO_NETWORKS_MESSAGE
            return report

        for request in requests:
            report.results.append(await self._process(intent.recipient, request))
        return report

    async def _process(self, recipient: str, request: NetworkRequest) -> DispatchResult:
        network = request.network
        symbol = request.symbol or None
        quantity = " ".join(part for part in (request.amount, request.symbol) if part)
        self._emit(f"Sending {quantity} to {recipient} on {network}")

        try:
            tx_id = await self.dispatcher.dispatch(recipient, request.amount, network)
        except FaucetError as exc:
            logger.warning("dispatch_rejected", network=network, error=str(exc))
            self._emit(f"[{network}] {exc}")
            return DispatchResult.failure(network, str(exc), request.amount, symbol)
        except Exception as exc:
            logger.error("dispatch_failed", network=network, error=str(exc))
            self._emit(f"[{network}] Transaction failed: {exc}")
            return DispatchResult.failure(
                network, f"Transaction failed: {exc}", request.amount, symbol
            )

        self._emit(f"[{network}] Transaction sent. Hash: {tx_id}")
        status = await self._track(tx_id, network)
        return DispatchResult.success(network, tx_id, status, request.amount, symbol)

    async def _track(self, tx_id: str, network: str) -> TxStatus:
        def on_update(status: TxStatus, attempt: int) -> None:
            label = "Initial" if attempt == 0 else "Updated"
            self._emit(f"[{network}] {label} transaction status: {status.value}")

        if not self.wait_for_confirmation:
            status = await self.poller.check(tx_id, network)
            on_update(status, 0)
            return status
        return await self.poller.wait(tx_id, network, on_update=on_update)


__all__ = [
    "FaucetSession",
    "NO_TRANSACTION_MESSAGE",
    "SessionReport",
    "SessionState",
    "resolve_requests",
]
