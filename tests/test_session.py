"""End-to-end tests for the faucet session pipeline."""

import asyncio
import json

import pytest

from faucet_agent.dispatcher import TransactionDispatcher, TxStatus
from faucet_agent.intent_parser import Intent, IntentParser, NetworkRequest
from faucet_agent.poller import StatusPoller
from faucet_agent.session import (
    NO_TRANSACTION_MESSAGE,
    FaucetSession,
    SessionState,
    resolve_requests,
)

ADDRESS = "0x2d6DA915F00dcA50b06a60fca010949382f4e0e8"


async def _no_sleep(delay: float) -> None:
    return None


def _model_reply(names, amount="0.01", **extra) -> str:
    payload = {
        "to": ADDRESS,
        "networks": [{"name": name, "amount": amount} for name in names],
        "explanation": f"Sending test tokens on {', '.join(names)}",
    }
    payload.update(extra)
    return json.dumps(payload)


@pytest.fixture
def make_session(registry, account, interpreter_factory):
    def _make(response, **kwargs):
        interpreter = interpreter_factory(response)
        dispatcher = TransactionDispatcher(registry, account)
        poller = StatusPoller(dispatcher, interval=0.01, timeout=0.05, sleep=_no_sleep)
        messages = []
        session = FaucetSession(
            IntentParser(interpreter, registry),
            registry,
            dispatcher,
            poller,
            notify=messages.append,
            **kwargs,
        )
        session.messages = messages
        session.interpreter = interpreter
        return session

    return _make


def _sent_counts(registry):
    return {config.name: len(config.client.eth.sent) for config in registry}


@pytest.mark.asyncio
async def test_single_network_request(make_session, registry) -> None:
    session = make_session(_model_reply(["sepolia"]))

    report = await session.handle(f"send test tokens to {ADDRESS} on sepolia")

    assert [r.network for r in report.results] == ["sepolia"]
    result = report.results[0]
    assert result.ok
    assert result.status is TxStatus.SUCCESS
    assert result.symbol == "ETH"
    counts = _sent_counts(registry)
    assert counts.pop("sepolia") == 1
    assert set(counts.values()) == {0}
    assert session.state is SessionState.IDLE


@pytest.mark.asyncio
async def test_all_networks_in_registry_order(make_session, registry) -> None:
    session = make_session(_model_reply(registry.list()))

    report = await session.handle(f"send tokens on all networks to {ADDRESS}")

    assert [r.network for r in report.results] == registry.list()
    assert all(r.ok for r in report.results)


@pytest.mark.asyncio
async def test_unknown_network_does_not_block_others(make_session) -> None:
    session = make_session(_model_reply(["sepolia", "foo", "polygon"]))

    report = await session.handle(f"send to {ADDRESS} on sepolia, foo and polygon")

    assert [r.network for r in report.results] == ["sepolia", "foo", "polygon"]
    assert report.results[0].ok
    assert not report.results[1].ok
    assert "Unknown network: foo" in report.results[1].error
    assert report.results[2].ok


@pytest.mark.asyncio
async def test_invalid_amount_is_per_network(make_session, registry) -> None:
    reply = json.dumps(
        {
            "to": ADDRESS,
            "networks": [
                {"name": "sepolia", "amount": "0.01"},
                {"name": "polygon", "amount": "-0.1"},
                {"name": "abstract", "amount": "0.01"},
            ],
            "explanation": "Sending test tokens",
        }
    )
    session = make_session(reply)

    report = await session.handle(f"send to {ADDRESS} on sepolia, polygon and abstract")

    assert [(r.network, r.ok) for r in report.results] == [
        ("sepolia", True),
        ("polygon", False),
        ("abstract", True),
    ]
    assert "Invalid amount" in report.results[1].error
    assert registry.lookup("polygon").client.eth.sent == []


@pytest.mark.asyncio
async def test_insufficient_funds_is_per_network(make_session, registry) -> None:
    registry.lookup("sepolia").client.eth.balance = 10**15
    session = make_session(_model_reply(["sepolia", "abstract"]))

    report = await session.handle(f"send to {ADDRESS} on both")

    assert not report.results[0].ok
    assert "Insufficient funds" in report.results[0].error
    assert report.results[1].ok


@pytest.mark.asyncio
async def test_transport_failure_is_per_network(make_session, registry) -> None:
    registry.lookup("abstract").client.eth.send_error = ConnectionError("rpc down")
    session = make_session(_model_reply(["abstract", "polygon"]))

    report = await session.handle(f"send to {ADDRESS} on abstract and polygon")

    assert "rpc down" in report.results[0].error
    assert report.results[1].ok


@pytest.mark.asyncio
async def test_pending_then_success_is_polled(make_session, registry) -> None:
    from web3.exceptions import TransactionNotFound

    eth = registry.lookup("sepolia").client.eth
    eth.receipts = [TransactionNotFound("not found"), {"status": 1}]
    session = make_session(_model_reply(["sepolia"]))

    report = await session.handle(f"send to {ADDRESS} on sepolia")

    assert report.results[0].status is TxStatus.SUCCESS
    assert any("Initial transaction status: Pending" in m for m in session.messages)
    assert any("Updated transaction status: Success" in m for m in session.messages)


@pytest.mark.asyncio
async def test_stuck_transaction_times_out(make_session, registry) -> None:
    from web3.exceptions import TransactionNotFound

    eth = registry.lookup("sepolia").client.eth
    eth.default_receipt = TransactionNotFound("not found")
    session = make_session(_model_reply(["sepolia"]))

    report = await session.handle(f"send to {ADDRESS} on sepolia")

    assert report.results[0].ok
    assert report.results[0].status is TxStatus.TIMED_OUT


@pytest.mark.asyncio
async def test_no_wait_reports_initial_status(make_session, registry) -> None:
    from web3.exceptions import TransactionNotFound

    eth = registry.lookup("sepolia").client.eth
    eth.default_receipt = TransactionNotFound("not found")
    session = make_session(_model_reply(["sepolia"]), wait_for_confirmation=False)

    report = await session.handle(f"send to {ADDRESS} on sepolia")

    assert report.results[0].status is TxStatus.PENDING
    assert len(eth.receipt_queries) == 1


@pytest.mark.asyncio
async def test_understanding_failure_message(make_session) -> None:
    session = make_session('{"error": "Which network?"}')

    report = await session.handle("send me stuff")

    assert report.intent is None
    assert report.results == []
    assert "Which network?" in report.message


@pytest.mark.asyncio
async def test_malformed_response_message(make_session) -> None:
    session = make_session(_model_reply(["sepolia"], to="0xZZZZ"))

    report = await session.handle("send to 0xZZZZ on sepolia")

    assert report.intent is None
    assert report.results == []
    assert report.message


@pytest.mark.asyncio
async def test_requires_send_keyword(make_session) -> None:
    session = make_session(_model_reply(["sepolia"]))

    report = await session.handle("what is my balance?")

    assert report.message == NO_TRANSACTION_MESSAGE
    assert session.interpreter.calls == []


@pytest.mark.asyncio
async def test_send_keyword_can_be_disabled(make_session) -> None:
    session = make_session(_model_reply(["sepolia"]), require_send_keyword=False)

    report = await session.handle(f"gimme tokens at {ADDRESS} on sepolia")

    assert len(report.results) == 1


@pytest.mark.asyncio
async def test_empty_line_is_ignored(make_session) -> None:
    session = make_session(_model_reply(["sepolia"]))
    report = await session.handle("   ")
    assert report.results == [] and report.message is None


@pytest.mark.asyncio
async def test_legacy_reply_uses_selector(make_session) -> None:
    reply = json.dumps({"to": ADDRESS, "amount": "0.02", "explanation": "Send"})
    session = make_session(reply)

    report = await session.handle(f"send to {ADDRESS} on polygon and abstract")

    assert [(r.network, r.amount, r.symbol) for r in report.results] == [
        ("abstract", "0.02", "ETH"),
        ("polygon", "0.02", "POL"),
    ]


@pytest.mark.asyncio
async def test_legacy_reply_wallet_is_not_all(make_session) -> None:
    reply = json.dumps({"to": ADDRESS, "amount": "0.02", "explanation": "Send"})
    session = make_session(reply)

    report = await session.handle(f"send to my wallet {ADDRESS} on polygon")

    assert [r.network for r in report.results] == ["polygon"]


@pytest.mark.asyncio
async def test_no_networks_found(make_session) -> None:
    reply = json.dumps({"to": ADDRESS, "amount": "0.02", "explanation": "Send"})
    session = make_session(reply)

    report = await session.handle(f"send to {ADDRESS} on mainnet")

    assert report.results == []
    assert report.intent is not None
    assert report.message


@pytest.mark.asyncio
async def test_warnings_are_reported(make_session) -> None:
    session = make_session(
        _model_reply(["sepolia"], warnings=["Interpreted 'sepolai' as 'sepolia'"])
    )

    await session.handle(f"send to {ADDRESS} on sepolai")

    assert "Note: Interpreted 'sepolai' as 'sepolia'" in session.messages


@pytest.mark.asyncio
async def test_overlapping_lines_are_serialized(make_session) -> None:
    session = make_session(_model_reply(["sepolia"]))
    original = session.dispatcher.dispatch
    active = []
    overlaps = []

    async def tracking_dispatch(*args):
        overlaps.append(len(active))
        active.append(1)
        await asyncio.sleep(0)
        try:
            return await original(*args)
        finally:
            active.pop()

    session.dispatcher.dispatch = tracking_dispatch

    reports = await asyncio.gather(
        session.handle(f"send to {ADDRESS} on sepolia"),
        session.handle(f"send to {ADDRESS} on sepolia"),
    )

    assert overlaps == [0, 0]
    assert all(len(report.results) == 1 for report in reports)


def test_resolve_requests_fills_symbols(registry) -> None:
    intent = Intent(
        recipient=ADDRESS,
        networks=[NetworkRequest("polygon", "0.1"), NetworkRequest("foo", "1")],
        explanation="",
    )
    requests = resolve_requests(intent, "", registry)
    assert requests == [NetworkRequest("polygon", "0.1", "POL"), NetworkRequest("foo", "1", "")]


def test_resolve_requests_uses_faucet_amount(registry) -> None:
    intent = Intent(recipient=ADDRESS, networks=[], explanation="")
    requests = resolve_requests(intent, "send on shardeum-atomium", registry)
    assert requests == [NetworkRequest("shardeum-atomium", "100", "SHM")]
