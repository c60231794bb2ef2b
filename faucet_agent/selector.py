"""Keyword-based selection of target networks."""

from __future__ import annotations

import re
from typing import Iterable, List

INCLUSIVE_KEYWORDS = ("all", "both")

# Whole words only: "wallet" and "small" do not mean every network
INCLUSIVE_PATTERN = re.compile(
    r"\b(?:" + "|".join(INCLUSIVE_KEYWORDS) + r")\b", re.IGNORECASE
)


def has_inclusive_keyword(text: str) -> bool:
    return INCLUSIVE_PATTERN.search(text) is not None


def select_networks(raw_text: str, available: Iterable[str]) -> List[str]:
    """Return the networks ``raw_text`` refers to, in ``available`` order.

    An inclusive keyword ("all", "both") used as a whole word selects every
    available network.
    Otherwise a network is selected when its name appears verbatim
    (case-insensitive) in the text. Misspellings are not corrected here.
    """
    names = list(available)
    if has_inclusive_keyword(raw_text):
        return names

    lowered = raw_text.lower()
    return [name for name in names if name.lower() in lowered]


__all__ = ["INCLUSIVE_KEYWORDS", "INCLUSIVE_PATTERN", "has_inclusive_keyword", "select_networks"]
