"""Loading of the optional faucet system-prompt file."""

from __future__ import annotations

from pathlib import Path
from string import Template
from typing import Optional

from faucet_agent.utils.logging import get_logger

logger = get_logger(__name__)

# Filled from the network registry when the prompt is built
PROMPT_PLACEHOLDERS = ("network_list", "catalog")


def missing_placeholders(template: str) -> list[str]:
    """Return the catalog placeholders ``template`` never references."""
    named = set()
    for match in Template.pattern.finditer(template):
        name = match.group("named") or match.group("braced")
        if name:
            named.add(name)
    return [name for name in PROMPT_PLACEHOLDERS if name not in named]


def load_prompt_template(path: Optional[Path]) -> Optional[str]:
    """Return the prompt template stored at ``path``.

    None means the built-in prompt should be used: no path configured, the
    file does not exist, or it holds only whitespace. A template that lacks
    ``$network_list`` or ``$catalog`` is still used, but the model will not
    see the live network catalog, so a warning is logged.
    """
    if path is None:
        return None

    try:
        content = Path(path).read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        logger.warning("prompt_template_missing", path=str(path))
        return None
    except OSError as exc:  # pragma: no cover - filesystem issues
        logger.error("prompt_template_error", path=str(path), error=str(exc))
        return None

    if not content:
        logger.warning("prompt_template_empty", path=str(path))
        return None

    missing = missing_placeholders(content)
    if missing:
        logger.warning("prompt_template_placeholders_missing", path=str(path), missing=missing)
    return content


__all__ = ["PROMPT_PLACEHOLDERS", "load_prompt_template", "missing_placeholders"]
