"""Command-line faucet agent.

Reads transfer requests in natural language and sends test tokens.

Usage:
    python -m faucet_agent.cli
    python -m faucet_agent.cli "send test tokens to 0x... on sepolia"
    python -m faucet_agent.cli --stdin < requests.txt
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TextIO

from eth_account import Account

from faucet_agent.cli_output import CLIOutput, OutputFormat
from faucet_agent.config import Settings, load_settings
from faucet_agent.dispatcher import TransactionDispatcher
from faucet_agent.errors import ConfigError
from faucet_agent.intent_parser import IntentParser
from faucet_agent.llm import GeminiInterpreter
from faucet_agent.networks import NetworkRegistry, build_registry, load_network_table
from faucet_agent.poller import StatusPoller
from faucet_agent.session import FaucetSession
from faucet_agent.utils.logging import configure_logging, get_logger
from faucet_agent.utils.prompts import load_prompt_template

logger = get_logger(__name__)

HELP_TEXT = "Commands: /quit, /help, /networks, /address"

Reader = Callable[[str], Awaitable[Optional[str]]]


@dataclass
class FaucetApp:
    """Wired-up components for one CLI run."""

    session: FaucetSession
    registry: NetworkRegistry
    dispatcher: TransactionDispatcher


def build_app(settings: Settings, output: CLIOutput, wait: bool = True) -> FaucetApp:
    """Construct the registry, model adapter and session from ``settings``."""
    account = Account.from_key(settings.wallet_private_key)
    registry = build_registry(load_network_table(settings.networks_json))
    interpreter = GeminiInterpreter(
        api_key=settings.gemini_api_key,
        model_name=settings.gemini_model,
    )
    parser = IntentParser(
        interpreter,
        registry,
        prompt_template=load_prompt_template(settings.prompt_file),
    )
    dispatcher = TransactionDispatcher(registry, account)
    poller = StatusPoller(
        dispatcher,
        interval=settings.poll_interval_seconds,
        timeout=settings.poll_timeout_seconds,
    )
    session = FaucetSession(
        parser,
        registry,
        dispatcher,
        poller,
        require_send_keyword=settings.require_send_keyword,
        wait_for_confirmation=wait,
        notify=output.status,
    )
    logger.info("faucet_ready", address=account.address, networks=registry.list())
    return FaucetApp(session=session, registry=registry, dispatcher=dispatcher)


async def process_line(app: FaucetApp, line: str, output: CLIOutput) -> None:
    """Run one request and print its report; errors never escape."""
    try:
        report = await app.session.handle(line)
    except Exception as exc:
        logger.error("request_failed", error=str(exc))
        output.error(f"Error processing transaction: {exc}")
        return
    output.report(report)


def handle_command(app: FaucetApp, command: str, output: CLIOutput) -> bool:
    """Run a slash command. Returns False when the session should end."""
    cmd = command.strip().lower()
    if cmd in ("/quit", "/exit", "/q"):
        output.info("Goodbye!")
        return False
    if cmd in ("/help", "/h"):
        output.info(HELP_TEXT)
    elif cmd == "/networks":
        output.info("Available networks:")
        output.networks(app.registry)
    elif cmd == "/address":
        output.info(f"Faucet address: {app.dispatcher.address}")
    else:
        output.warning(f"Unknown command: {command}")
    return True


async def _prompt_input(prompt: str) -> Optional[str]:
    try:
        return await asyncio.to_thread(input, prompt)
    except EOFError:
        return None


async def run_interactive(
    app: FaucetApp,
    output: CLIOutput,
    reader: Reader = _prompt_input,
) -> None:
    """Run interactive REPL session."""
    output.info("AI Faucet Agent - Interactive Mode")
    output.info(f"Networks: {', '.join(app.registry.list())}")
    output.info("Enter your transaction request, or /help for commands")
    output.info("-" * 50)

    while True:
        line = await reader("\n> ")
        if line is None:
            output.info("Goodbye!")
            break

        line = line.strip()
        if not line:
            continue
        if line.startswith("/"):
            if not handle_command(app, line, output):
                break
            continue

        await process_line(app, line, output)


async def run_stream(app: FaucetApp, stream: TextIO, output: CLIOutput) -> None:
    """Process every non-empty line of ``stream`` in order."""
    while True:
        line = await asyncio.to_thread(stream.readline)
        if not line:
            break
        line = line.strip()
        if line:
            await process_line(app, line, output)


async def main(argv: Optional[list[str]] = None) -> int:
    """CLI entrypoint."""
    parser = argparse.ArgumentParser(
        description="AI faucet agent - send testnet tokens from plain English",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  faucet-agent
  faucet-agent "send test tokens to 0x... on sepolia and polygon"
  faucet-agent --stdin < requests.txt
  faucet-agent --output json "send tokens on all networks to 0x..."
        """,
    )
    parser.add_argument(
        "query",
        nargs="?",
        help="Single request to process (starts interactive mode when omitted)",
    )
    parser.add_argument(
        "--stdin",
        action="store_true",
        help="Process one request per line read from stdin",
    )
    parser.add_argument(
        "-o",
        "--output",
        choices=["text", "json", "rich"],
        default="text",
        help="Output format (default: text)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show debug information",
    )
    parser.add_argument(
        "--no-wait",
        action="store_true",
        help="Report the initial transaction status without polling",
    )

    args = parser.parse_args(argv)
    output = CLIOutput(format=OutputFormat(args.output), verbose=args.verbose)

    try:
        settings = load_settings()
    except ConfigError as exc:
        output.error(str(exc))
        output.info("Ensure .env sets WALLET_PRIVATE_KEY and GEMINI_API_KEY")
        return 1

    configure_logging("DEBUG" if args.verbose else settings.log_level, settings.log_file)

    try:
        app = build_app(settings, output, wait=not args.no_wait)
    except (OSError, ValueError) as exc:
        output.error(f"Failed to load networks: {exc}")
        return 1

    try:
        if args.query:
            await process_line(app, args.query, output)
        elif args.stdin:
            await run_stream(app, sys.stdin, output)
        else:
            await run_interactive(app, output)
    except KeyboardInterrupt:
        output.info("\nInterrupted")
    return 0


def cli_main() -> None:
    """Synchronous wrapper for CLI entry."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli_main()
