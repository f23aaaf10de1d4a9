"""Pattern-based contract field extraction.

Fallback for when the AI analyzer is disabled or fails.
"""

from __future__ import annotations

import calendar
import logging
import re
from datetime import date, datetime
from typing import Optional

from app.schemas.domain import AnalysisExtraction, ContractType, FieldConfidence

logger = logging.getLogger(__name__)

BASELINE_CONFIDENCE = 0.3

_MONTHS = (
    "january|february|march|april|may|june|july|august|september|october|november|december"
    "|jan|feb|mar|apr|jun|jul|aug|sep|sept|oct|nov|dec"
)
_DATE = (
    r"(\d{4}[/.-]\d{1,2}[/.-]\d{1,2}"
    r"|\d{1,2}[/.-]\d{1,2}[/.-]\d{2,4}"
    rf"|(?:{_MONTHS})\.?\s+\d{{1,2}}(?:st|nd|rd|th)?,?\s+\d{{4}}"
    rf"|\d{{1,2}}(?:st|nd|rd|th)?\s+(?:{_MONTHS})\.?,?\s+\d{{4}})"
)

_DOC_TYPE_PATTERNS: list[tuple[re.Pattern[str], ContractType]] = [
    (re.compile(r"master\s+services?\s+agreement|\bMSA\b", re.I), ContractType.MSA),
    (re.compile(r"statement\s+of\s+work|\bSOW\b", re.I), ContractType.SOW),
    (
        re.compile(r"non[\s-]?disclosure\s+agreement|confidentiality\s+agreement|\bNDA\b", re.I),
        ContractType.NDA,
    ),
    (re.compile(r"service\s+level\s+agreement|\bSLA\b"), ContractType.SLA),
    (re.compile(r"subscription\s+agreement", re.I), ContractType.SUBSCRIPTION_AGREEMENT),
    (re.compile(r"services?\s+agreement", re.I), ContractType.SERVICE_AGREEMENT),
    (re.compile(r"limited\s+partnership\s+agreement|\bLPA\b"), ContractType.LPA),
    (re.compile(r"side\s+letter", re.I), ContractType.SIDE_LETTER),
    (re.compile(r"\bamendment\b", re.I), ContractType.AMENDMENT),
    (re.compile(r"purchase\s+order|\bPO\s+\d+", re.I), ContractType.PURCHASE_ORDER),
    (re.compile(r"lease\s+agreement", re.I), ContractType.LEASE),
    (re.compile(r"licen[cs]e\s+agreement", re.I), ContractType.LICENSE),
    (re.compile(r"consulting\s+agreement", re.I), ContractType.CONSULTING),
    (re.compile(r"employment\s+(?:agreement|contract)", re.I), ContractType.EMPLOYMENT),
]

_ENTITY = r"([A-Z][\w&.,'\- ]*?[\w.])"
_VENDOR_PATTERNS: list[re.Pattern[str]] = [
    re.compile(rf"\bbetween\s+{_ENTITY}\s*(?:\(|,\s*a\s|,?\s+and\s)"),
    re.compile(rf"{_ENTITY}\s*\((?:the\s+)?[\"“]?(?:Vendor|Supplier|Provider|Service Provider)\b"),
    re.compile(
        rf"{_ENTITY},\s+an?\s+(?:[A-Z][a-z]+\s+)?(?:corporation|limited liability company|LLC|Inc\.?)",
    ),
    re.compile(r"(?:vendor|supplier|provider|client|customer)\s*:\s*([A-Z][^\n]{1,120})", re.I),
]

_EFFECTIVE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(rf"effective\s+date\s*(?:is|of|:)?\s*{_DATE}", re.I),
    re.compile(rf"effective\s+(?:as\s+of|from|on)\s+{_DATE}", re.I),
    re.compile(rf"commenc\w*\s+(?:date\s*:?\s*|on\s+){_DATE}", re.I),
    re.compile(rf"dated\s+(?:as\s+of\s+)?{_DATE}", re.I),
]

_TERMINATION_PATTERNS: list[re.Pattern[str]] = [
    re.compile(rf"(?:termination|expir(?:y|ation))\s+date\s*(?:is|of|:)?\s*{_DATE}", re.I),
    re.compile(rf"(?:terminate|expire)s?\s+(?:on|as\s+of)\s+{_DATE}", re.I),
    re.compile(rf"(?:continue|remain\s+in\s+effect)\s+until\s+{_DATE}", re.I),
]

_TERM_PATTERN = re.compile(
    r"term\s+of\s+(?:\w+\s+)?\(?(\d{1,3})\)?\s*(year|month)s?", re.I
)

_TITLE_HINT = re.compile(r"agreement|contract|addendum|amendment|statement of work|order", re.I)


def standardize_date(raw: str) -> Optional[str]:
    """Return an ISO date for a matched date string, or None if invalid.

    Numeric dates that don't start with the year are read as MM/DD/YYYY. Two
    digit years below 50 land in the 2000s, the rest in the 1900s.
    """
    value = raw.strip().rstrip(".,")
    parts = re.split(r"[/.-]", value)
    if len(parts) == 3 and all(p.isdigit() for p in parts):
        if len(parts[0]) == 4:
            year, month, day = (int(p) for p in parts)
        else:
            month, day, year = (int(p) for p in parts)
            if len(parts[2]) == 2:
                year += 2000 if year < 50 else 1900
        try:
            return date(year, month, day).isoformat()
        except ValueError:
            return None

    cleaned = re.sub(r"(\d)(st|nd|rd|th)\b", r"\1", value, flags=re.I)
    cleaned = re.sub(r"\s+", " ", cleaned.replace(",", " ").replace(".", " ")).strip()
    for fmt in ("%B %d %Y", "%b %d %Y", "%d %B %Y", "%d %b %Y"):
        try:
            return datetime.strptime(cleaned, fmt).date().isoformat()
        except ValueError:
            continue
    # "Sept" is not a strptime abbreviation
    if cleaned.lower().startswith("sept"):
        return standardize_date("Sep" + cleaned[4:])
    return None


def add_months(start: date, months: int) -> date:
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def _first_date(patterns: list[re.Pattern[str]], text: str) -> Optional[str]:
    for pattern in patterns:
        for match in pattern.finditer(text):
            iso = standardize_date(match.group(1))
            if iso:
                return iso
    return None


def _guess_title(text: str) -> Optional[str]:
    for line in text.splitlines()[:15]:
        candidate = line.strip()
        if 3 <= len(candidate) <= 120 and _TITLE_HINT.search(candidate):
            return candidate
    return None


def _clean_entity(raw: str) -> Optional[str]:
    value = raw.strip().strip("\"'“”").rstrip(",;")
    value = re.sub(r"\s+", " ", value)
    return value or None


def analyze_text(
    text: str,
    *,
    document_title: Optional[str] = None,
    metadata_title: Optional[str] = None,
) -> AnalysisExtraction:
    """Extract vendor, title, type and dates from contract text with regexes."""
    result = AnalysisExtraction(
        confidence=FieldConfidence(
            vendor=BASELINE_CONFIDENCE,
            contract_title=BASELINE_CONFIDENCE,
            doc_type=BASELINE_CONFIDENCE,
            effective_date=BASELINE_CONFIDENCE,
            termination_date=BASELINE_CONFIDENCE,
        )
    )
    confidence = result.confidence

    if metadata_title:
        result.contract_title = metadata_title.strip()
        confidence.contract_title = 0.6
    else:
        guessed = _guess_title(text)
        if guessed:
            result.contract_title = guessed
            confidence.contract_title = 0.5
        elif document_title:
            result.contract_title = document_title.strip()
            confidence.contract_title = 0.4

    haystacks = [text] + ([document_title] if document_title else [])
    for pattern, contract_type in _DOC_TYPE_PATTERNS:
        if any(pattern.search(h) for h in haystacks):
            result.doc_type = contract_type.value
            confidence.doc_type = 0.7
            break

    for pattern in _VENDOR_PATTERNS:
        match = pattern.search(text)
        if match:
            vendor = _clean_entity(match.group(1))
            if vendor:
                result.vendor = vendor
                confidence.vendor = 0.6
                break

    effective = _first_date(_EFFECTIVE_PATTERNS, text)
    if effective:
        result.effective_date = effective
        confidence.effective_date = 0.7

    termination = _first_date(_TERMINATION_PATTERNS, text)
    if termination:
        result.termination_date = termination
        confidence.termination_date = 0.7
    elif effective:
        term = _TERM_PATTERN.search(text)
        if term:
            count = int(term.group(1))
            months = count * 12 if term.group(2).lower() == "year" else count
            start = date.fromisoformat(effective)
            result.termination_date = add_months(start, months).isoformat()
            confidence.termination_date = 0.6

    logger.debug(
        "Rule analysis: vendor=%s type=%s effective=%s termination=%s",
        result.vendor,
        result.doc_type,
        result.effective_date,
        result.termination_date,
    )
    return result


__all__ = ["BASELINE_CONFIDENCE", "add_months", "analyze_text", "standardize_date"]
