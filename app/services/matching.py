"""Fuzzy matching of analysis output against a tenant's existing contracts."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from rapidfuzz import fuzz, process, utils

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 85


def suggest_contract(
    candidates: Iterable[tuple[str, str]],
    *,
    vendor: Optional[str] = None,
    title: Optional[str] = None,
    threshold: int = DEFAULT_THRESHOLD,
) -> Optional[str]:
    """Return the id of the best matching contract, or None.

    ``candidates`` are ``(contract_id, label)`` pairs where the label is a
    counterparty name or contract title. Vendor is tried before title and
    the highest-scoring hit at or above ``threshold`` wins.
    """
    pairs = list(candidates)
    if not pairs:
        return None
    labels = [label for _, label in pairs]

    best: Optional[tuple[str, float]] = None
    for query in (vendor, title):
        if not query or not query.strip():
            continue
        match = process.extractOne(
            query,
            labels,
            scorer=fuzz.token_set_ratio,
            processor=utils.default_process,
            score_cutoff=threshold,
        )
        if match is None:
            continue
        _, score, index = match
        if best is None or score > best[1]:
            best = (pairs[index][0], score)

    if best is not None:
        logger.info("Suggested contract %s (score=%.1f)", best[0], best[1])
        return best[0]
    return None


__all__ = ["DEFAULT_THRESHOLD", "suggest_contract"]
