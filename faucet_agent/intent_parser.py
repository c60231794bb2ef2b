"""Turn free-form faucet requests into validated structured intents."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from string import Template
from typing import Any, Dict, List, Optional, Sequence

from web3 import Web3

from faucet_agent.errors import InvalidAmount, MalformedResponse, UnderstandingFailure
from faucet_agent.llm import Interpreter
from faucet_agent.networks import NetworkRegistry
from faucet_agent.utils.json_utils import parse_llm_json
from faucet_agent.utils.logging import get_logger
from faucet_agent.utils.units import normalize_amount

logger = get_logger(__name__)

ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")

# Line patterns for model output that is not valid JSON
FALLBACK_TO_PATTERN = re.compile(r"\bto:\s*\"?([0-9a-fA-Fx]+)", re.IGNORECASE)
FALLBACK_AMOUNT_PATTERN = re.compile(r"\bamount:\s*\"?([\d.]+)", re.IGNORECASE)
FALLBACK_EXPLANATION_PATTERN = re.compile(r"\bexplanation:\s*\"?(.+)", re.IGNORECASE)
FALLBACK_NETWORKS_PATTERN = re.compile(r"\bnetworks?:\s*\"?([\w ,\-]+)", re.IGNORECASE)

DEFAULT_SYSTEM_PROMPT = """\
You are a testnet faucet assistant. You turn a user's request for test tokens
into a JSON transfer instruction.

Available networks: $network_list

Faucet catalog (network: amount symbol, chain id):
$catalog

Rules:
1. Copy the recipient address exactly as the user wrote it. It must be
   0x followed by 40 hexadecimal characters.
2. Correct obvious misspellings of network names (for example "sepolai" ->
   "sepolia") and of the word "to". Never correct silently: add one entry to
   "warnings" per correction, e.g. "Interpreted 'sepolai' as 'sepolia'".
3. Select one or more networks from the available list. If the user says
   "all" or "both", select every available network.
4. Unless the user asks for a specific amount, use the catalog amount and
   symbol for each network. Amounts are plain decimal strings without units.
5. If the request is ambiguous, has no recipient address, or names no
   network you can map to the list, reply with {"error": "<reason>"}.

Reply with JSON only, in exactly this shape:
{
  "to": "0x...",
  "networks": [{"name": "<network>", "amount": "<decimal>", "symbol": "<symbol>"}],
  "explanation": "<one sentence describing the transfers>",
  "warnings": ["<correction>", ...]
}
"""


@dataclass(frozen=True)
class NetworkRequest:
    """One transfer the user asked for."""

    network: str
    amount: str
    symbol: str = ""


@dataclass
class Intent:
    """Structured form of one user request.

    Attributes:
        recipient: Checksummed address that receives the funds.
        networks: Requested transfers in the order the model listed them.
            Empty when the model output did not name any network; the
            session then derives networks from the raw text.
        explanation: Human-readable summary from the model.
        warnings: Corrections the model applied to the input.
        default_amount: Amount to use for derived networks, if the model
            gave a single amount instead of a per-network list.
    """

    recipient: str
    networks: List[NetworkRequest]
    explanation: str
    warnings: List[str] = field(default_factory=list)
    default_amount: Optional[str] = None


def render_catalog(registry: NetworkRegistry, available: Sequence[str]) -> str:
    lines = []
    for name in available:
        config = registry.lookup(name)
        if config is None:
            continue
        lines.append(
            f"- {name}: {config.faucet.amount} {config.faucet.symbol}, "
            f"chain id {config.chain.chain_id}"
        )
    return "\n".join(lines)


def build_system_prompt(
    registry: NetworkRegistry,
    available: Sequence[str],
    template: Optional[str] = None,
) -> str:
    """Fill the system prompt template with the current network catalog."""
    return Template(template or DEFAULT_SYSTEM_PROMPT).safe_substitute(
        network_list=", ".join(available),
        catalog=render_catalog(registry, available),
    )


def extract_fallback_fields(text: str) -> Optional[Dict[str, Any]]:
    """Recover ``to``/``amount``/``explanation`` from ``key: value`` lines.

    Returns None unless all three fields are present.
    """
    to_match = FALLBACK_TO_PATTERN.search(text)
    amount_match = FALLBACK_AMOUNT_PATTERN.search(text)
    explanation_match = FALLBACK_EXPLANATION_PATTERN.search(text)
    if not (to_match and amount_match and explanation_match):
        return None

    payload: Dict[str, Any] = {
        "to": to_match.group(1),
        "amount": amount_match.group(1),
        "explanation": explanation_match.group(1).strip().rstrip('",'),
    }
    networks_match = FALLBACK_NETWORKS_PATTERN.search(text)
    if networks_match:
        names = [part.strip() for part in networks_match.group(1).split(",")]
        payload["networks"] = [name for name in names if name]
    return payload


def _require_str(payload: Dict[str, Any], key: str, raw: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value.strip():
        raise MalformedResponse(f"Model response is missing '{key}'", raw=raw)
    return value.strip()


def _decode_amount(value: Any) -> str:
    try:
        return normalize_amount(value)
    except InvalidAmount:
        # Rejected by the dispatcher for this network only
        return str(value).strip()


def _decode_network(entry: Any, default_amount: Optional[str], raw: str) -> NetworkRequest:
    if isinstance(entry, str):
        if default_amount is None:
            raise MalformedResponse(f"No amount given for network '{entry}'", raw=raw)
        return NetworkRequest(network=entry.strip().lower(), amount=default_amount)

    if not isinstance(entry, dict):
        raise MalformedResponse(f"Unexpected network entry: {entry!r}", raw=raw)

    name = _require_str(entry, "name", raw).lower()
    amount_value = entry.get("amount", default_amount)
    if amount_value is None:
        raise MalformedResponse(f"No amount given for network '{name}'", raw=raw)
    symbol = entry.get("symbol") or ""
    if not isinstance(symbol, str):
        raise MalformedResponse(f"Invalid symbol for network '{name}'", raw=raw)
    return NetworkRequest(
        network=name,
        amount=_decode_amount(amount_value),
        symbol=symbol.strip(),
    )


def _decode_warnings(value: Any, raw: str) -> List[str]:
    if value in (None, "", []):
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return [item for item in value if item.strip()]
    raise MalformedResponse("'warnings' must be a list of strings", raw=raw)


def decode_intent(raw: str) -> Intent:
    """Validate model output and convert it to an :class:`Intent`.

    Raises:
        UnderstandingFailure: The model replied with an ``error`` object.
        MalformedResponse: The output does not have the intent shape.
    """
    try:
        payload = parse_llm_json(raw)
    except json.JSONDecodeError as exc:
        fallback = extract_fallback_fields(raw or "")
        if fallback is None:
            raise MalformedResponse(f"Failed to parse model response: {exc}", raw=raw) from exc
        logger.info("intent_fallback_decoder_used")
        payload = fallback

    reason = payload.get("error")
    if reason:
        raise UnderstandingFailure(str(reason))

    recipient = _require_str(payload, "to", raw)
    if not ADDRESS_PATTERN.match(recipient):
        raise MalformedResponse(f"Invalid recipient address: {recipient}", raw=raw)

    explanation = _require_str(payload, "explanation", raw)

    default_amount: Optional[str] = None
    if payload.get("amount") is not None:
        default_amount = _decode_amount(payload["amount"])

    entries = payload.get("networks") or []
    if isinstance(entries, (str, dict)):
        entries = [entries]
    if not isinstance(entries, list):
        raise MalformedResponse("'networks' must be a list", raw=raw)

    networks = [_decode_network(entry, default_amount, raw) for entry in entries]

    return Intent(
        recipient=Web3.to_checksum_address(recipient),
        networks=networks,
        explanation=explanation,
        warnings=_decode_warnings(payload.get("warnings"), raw),
        default_amount=default_amount,
    )


class IntentParser:
    """Extracts intents with a language model and validates them locally."""

    def __init__(
        self,
        interpreter: Interpreter,
        registry: NetworkRegistry,
        prompt_template: Optional[str] = None,
    ) -> None:
        self.interpreter = interpreter
        self.registry = registry
        self.prompt_template = prompt_template

    async def parse(
        self,
        raw_text: str,
        available_networks: Optional[Sequence[str]] = None,
    ) -> Intent:
        """Interpret ``raw_text`` against the available networks."""
        available = list(available_networks or self.registry.list())
        system_prompt = build_system_prompt(self.registry, available, self.prompt_template)

        response = await self.interpreter.interpret(system_prompt, raw_text)
        logger.debug("intent_raw_response", response=response)

        try:
            intent = decode_intent(response)
        except MalformedResponse as exc:
            logger.error("intent_malformed", error=str(exc), raw=exc.raw)
            raise
        except UnderstandingFailure as exc:
            logger.info("intent_not_understood", reason=str(exc))
            raise

        logger.info(
            "intent_parsed",
            recipient=intent.recipient,
            networks=[request.network for request in intent.networks],
            warnings=len(intent.warnings),
        )
        return intent


__all__ = [
    "ADDRESS_PATTERN",
    "DEFAULT_SYSTEM_PROMPT",
    "Intent",
    "IntentParser",
    "NetworkRequest",
    "build_system_prompt",
    "decode_intent",
    "extract_fallback_fields",
]
