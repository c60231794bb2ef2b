"""CLI output formatting for terminal display.

Provides formatters for plain text, JSON, and rich terminal output.
"""

from __future__ import annotations

import json
import sys
from enum import Enum
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.table import Table

from faucet_agent.dispatcher import DispatchResult
from faucet_agent.networks import NetworkRegistry
from faucet_agent.session import SessionReport


class OutputFormat(Enum):
    """Supported output formats."""

    TEXT = "text"
    JSON = "json"
    RICH = "rich"


def result_to_dict(result: DispatchResult) -> Dict[str, Any]:
    return {
        "network": result.network,
        "ok": result.ok,
        "txId": result.tx_id,
        "status": result.status.value if result.status else None,
        "error": result.error,
        "amount": result.amount,
        "symbol": result.symbol,
    }


def report_to_dict(report: SessionReport) -> Dict[str, Any]:
    intent = report.intent
    return {
        "input": report.input,
        "message": report.message,
        "recipient": intent.recipient if intent else None,
        "explanation": intent.explanation if intent else None,
        "warnings": list(intent.warnings) if intent else [],
        "results": [result_to_dict(result) for result in report.results],
    }


def format_result_plain(result: DispatchResult) -> str:
    """Format a single dispatch result as one line."""
    quantity = " ".join(part for part in (result.amount, result.symbol) if part)
    prefix = f"[{result.network}]"
    if quantity:
        prefix += f" {quantity}"
    if result.ok:
        status = result.status.value if result.status else "Unknown"
        return f"✅ {prefix}: {status} ({result.tx_id})"
    return f"❌ {prefix}: {result.error}"


def format_results_plain(results: List[DispatchResult]) -> str:
    if not results:
        return "No transfers were attempted."
    return "\n".join(format_result_plain(result) for result in results)


class CLIOutput:
    """Unified output handler for CLI."""

    def __init__(
        self,
        format: OutputFormat = OutputFormat.TEXT,
        verbose: bool = False,
        stream: Any = None,
        err_stream: Any = None,
    ) -> None:
        self.format = format
        self.verbose = verbose
        self.stream = stream or sys.stdout
        self.err_stream = err_stream or sys.stderr
        self._rich_console: Optional[Console] = None
        if format == OutputFormat.RICH:
            self._rich_console = Console(file=self.stream)

    def report(self, report: SessionReport) -> None:
        """Output the outcome of one input line."""
        if self.format == OutputFormat.JSON:
            print(json.dumps(report_to_dict(report)), file=self.stream)
            return

        if report.message:
            if report.intent is None:
                self.warning(report.message)
            else:
                self.info(report.message)
        if not report.results:
            return

        if self.format == OutputFormat.RICH and self._rich_console:
            self._rich_results(report.results)
        else:
            print(format_results_plain(report.results), file=self.stream)

    def _rich_results(self, results: List[DispatchResult]) -> None:
        assert self._rich_console is not None
        table = Table(title="Faucet transfers")
        table.add_column("Network", style="cyan")
        table.add_column("Amount")
        table.add_column("Status", style="magenta")
        table.add_column("Transaction / Error", style="dim")

        for result in results:
            amount = " ".join(part for part in (result.amount, result.symbol) if part)
            if result.ok:
                status = result.status.value if result.status else "Unknown"
                table.add_row(result.network, amount, status, result.tx_id or "")
            else:
                table.add_row(result.network, amount, "[red]Error[/red]", result.error or "")

        self._rich_console.print(table)

    def networks(self, registry: NetworkRegistry) -> None:
        """List the configured networks and their faucet amounts."""
        rows = [
            {
                "name": config.name,
                "chainId": config.chain.chain_id,
                "amount": config.faucet.amount,
                "symbol": config.faucet.symbol,
                "testnet": config.chain.testnet,
            }
            for config in registry
        ]
        if self.format == OutputFormat.JSON:
            print(json.dumps({"networks": rows}), file=self.stream)
            return

        if self.format == OutputFormat.RICH and self._rich_console:
            table = Table(title="Networks")
            table.add_column("Name", style="cyan")
            table.add_column("Chain ID")
            table.add_column("Faucet amount")
            for row in rows:
                table.add_row(row["name"], str(row["chainId"]), f"{row['amount']} {row['symbol']}")
            self._rich_console.print(table)
            return

        for row in rows:
            print(
                f"  - {row['name']} (chain {row['chainId']}): {row['amount']} {row['symbol']}",
                file=self.stream,
            )

    def status(self, message: str) -> None:
        """Output a status message."""
        if self.format == OutputFormat.JSON:
            return  # Suppress status in JSON mode

        if self.format == OutputFormat.RICH and self._rich_console:
            self._rich_console.print(f"[dim]⏳ {message}[/dim]")
        else:
            print(f"⏳ {message}", file=self.stream)

    def info(self, message: str) -> None:
        """Output an info message."""
        if self.format == OutputFormat.JSON:
            return

        if self.format == OutputFormat.RICH and self._rich_console:
            self._rich_console.print(f"[blue]ℹ️  {message}[/blue]")
        else:
            print(f"ℹ️  {message}", file=self.stream)

    def warning(self, message: str) -> None:
        """Output a warning message."""
        if self.format == OutputFormat.JSON:
            print(json.dumps({"warning": message}), file=self.err_stream)
            return

        if self.format == OutputFormat.RICH and self._rich_console:
            self._rich_console.print(f"[yellow]⚠️  {message}[/yellow]")
        else:
            print(f"⚠️  {message}", file=self.err_stream)

    def error(self, message: str) -> None:
        """Output an error message."""
        if self.format == OutputFormat.JSON:
            print(json.dumps({"error": message}), file=self.err_stream)
            return

        if self.format == OutputFormat.RICH and self._rich_console:
            self._rich_console.print(f"[red]❌ {message}[/red]")
        else:
            print(f"❌ {message}", file=self.err_stream)

    def debug(self, message: str, data: Any = None) -> None:
        """Output debug information (only in verbose mode)."""
        if not self.verbose:
            return

        if self.format == OutputFormat.JSON:
            output = {"debug": message}
            if data is not None:
                output["data"] = data
            print(json.dumps(output), file=self.err_stream)
            return

        print(f"🔍 {message}", file=self.err_stream)
        if data is not None:
            print(f"   {data}", file=self.err_stream)
