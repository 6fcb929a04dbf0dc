"""Keyword-based category suggestions.

Used when the language model is unavailable. Keywords are matched in the
normalized description (lowercase, punctuation stripped except spaces) and
only categories present in the candidate list can be chosen.
"""

from __future__ import annotations

import re
import string
from typing import Dict, List, Optional, Sequence, TypeVar

_PUNCT_TABLE = str.maketrans({c: " " for c in string.punctuation})

FALLBACK_NAMES = ("Other", "Other Income")

C = TypeVar("C")


def _normalize(text: str) -> str:
    return re.sub(r"\s+", " ", text.lower().translate(_PUNCT_TABLE)).strip()


def match_category(name: Optional[str], categories: Sequence[C]) -> Optional[C]:
    """Case-insensitive exact name lookup."""
    if not name or not isinstance(name, str):
        return None
    wanted = name.strip().lower()
    for cat in categories:
        if cat.name.lower() == wanted:
            return cat
    return None


def fallback_category(categories: Sequence[C]) -> Optional[C]:
    """"Other"/"Other Income" when offered, else the first candidate."""
    for cat in categories:
        if cat.name in FALLBACK_NAMES:
            return cat
    return categories[0] if categories else None


def suggest_category(
    description: str,
    categories: Sequence[C],
    rules: Dict[str, List[str]],
) -> Optional[C]:
    """First rule whose keyword appears in ``description``.

    Word-boundary matches win over plain containment so "gas" does not fire
    on "vegas". Order of ``rules`` decides ties.
    """
    norm = _normalize(description or "")
    if not norm:
        return None
    by_name = {c.name.lower(): c for c in categories}

    # Precompute keyword -> category, keep first occurrence
    kw_to_cat: Dict[str, C] = {}
    for cat_name, kws in rules.items():
        cat = by_name.get(cat_name.lower())
        if cat is None:
            continue
        for kw in kws or []:
            kw = _normalize(kw)
            if kw and kw not in kw_to_cat:
                kw_to_cat[kw] = cat

    for kw, cat in kw_to_cat.items():
        if re.search(r"\b" + re.escape(kw) + r"\b", norm):
            return cat

    for kw, cat in kw_to_cat.items():
        if len(kw) > 3 and kw in norm:
            return cat
    return None
