"""Deterministic intent parser for natural language match requests.

Extracts boxer name, weight, show date and category with ordered regex rules,
then resolves the name against the caller's own roster. This is the universal
fallback for assisted parsing, so it never raises: every failure is reported
through ``ParsedIntent.error``.

Each extraction concern is an ordered list of rules; the first rule that
yields a usable value wins.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date

from loguru import logger

from boxmatch.matchmaking.fuzzy import find_boxers_by_name
from boxmatch.matchmaking.types import AmbiguousMatch, BoxerSnapshot, ParsedIntent, TargetCriteria

MIN_WEIGHT_KG = 40.0
MAX_WEIGHT_KG = 150.0

HIGH_CONFIDENCE_SCORE = 0.9
AMBIGUITY_BAND = 0.1
MAX_AMBIGUOUS_MATCHES = 5


@dataclass(frozen=True)
class ExtractionRule:
    """A named regex whose first capture group holds the extracted value."""

    name: str
    pattern: re.Pattern[str]

    def search(self, text: str) -> str | None:
        match = self.pattern.search(text)
        return match.group(1) if match else None


def _rule(name: str, pattern: str) -> ExtractionRule:
    return ExtractionRule(name=name, pattern=re.compile(pattern, re.IGNORECASE))


_MONTHS = (
    r"(?:jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|jun(?:e)?|jul(?:y)?"
    r"|aug(?:ust)?|sep(?:tember)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)"
)
_ORDINAL = r"(?:st|nd|rd|th)?"

NAME_RULES = [
    _rule("find_match_for", r"find\s+(?:a\s+)?match\s+for\s+(.+)"),
    _rule("match_against", r"match\s+(.+?)\s+(?:against|with|versus|vs\.?)"),
    _rule("opponent_for", r"(?:opponent|match)\s+for\s+(.+)"),
    _rule("who_can_fight", r"(?:who|what)\s+(?:can|could)\s+(.+?)\s+fight"),
    _rule("needs_a_match", r"(.+?)\s+needs?\s+(?:a\s+)?(?:match|opponent)"),
]

WEIGHT_RULES = [
    _rule("kg", r"(\d+(?:\.\d+)?)\s*kg(?:s|\.)?"),
    _rule("kilos", r"(\d+(?:\.\d+)?)\s*kilo(?:s|gram(?:s)?)?"),
    _rule("weighing", r"\b(?:at|weighing|weight)\s+(\d+(?:\.\d+)?)"),
]

DATE_RULES = [
    _rule("numeric", r"\b(?:on|for)\s+(\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4})"),
    _rule("day_month", rf"\b(?:on|for)\s+(\d{{1,2}}{_ORDINAL}\s+{_MONTHS}\s*\d{{0,4}})"),
    _rule("month_day", rf"\b(?:on|for)\s+({_MONTHS}\s+\d{{1,2}}{_ORDINAL}(?:\s*,?\s*\d{{2,4}})?)"),
]

CATEGORY_RULES = [
    _rule("category", r"\b(junior|youth|elite)\b"),
]

# Fragments removed from an extracted name before roster lookup
_NAME_NOISE = [
    re.compile(r",?\s*(?:at\s+)?\d+(?:\.\d+)?\s*kgs?\.?", re.IGNORECASE),
    re.compile(r",?\s*(?:at\s+)?\d+(?:\.\d+)?\s*kilo(?:s|gram(?:s)?)?", re.IGNORECASE),
    re.compile(r",?\s*\b(?:at|weighing|weight)\s+\d+(?:\.\d+)?", re.IGNORECASE),
    re.compile(
        rf",?\s*\b(?:on|for)\s+(?:\d{{1,2}}[/\-]\d{{1,2}}[/\-]\d{{2,4}}"
        rf"|\d{{1,2}}{_ORDINAL}\s+{_MONTHS}(?:\s*,?\s*\d{{2,4}})?"
        rf"|{_MONTHS}\s+\d{{1,2}}{_ORDINAL}(?:\s*,?\s*\d{{2,4}})?)",
        re.IGNORECASE,
    ),
    re.compile(r",?\s*\b(?:junior|youth|elite)\b", re.IGNORECASE),
]
_TRAILING_PUNCTUATION = re.compile(r"[,.\-!?\s]+$")

_MONTH_NUMBERS = {
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}


# ═══════════════════════════════════════════
# EXTRACTION
# ═══════════════════════════════════════════


def _first(rules: list[ExtractionRule], text: str, convert: Callable[[str], object | None]):
    for rule in rules:
        raw = rule.search(text)
        if raw is None:
            continue
        value = convert(raw)
        if value is not None:
            return value
    return None


def _clean_name(raw: str) -> str | None:
    name = _TRAILING_PUNCTUATION.sub("", raw.strip())
    for noise in _NAME_NOISE:
        name = noise.sub("", name).strip()
    name = _TRAILING_PUNCTUATION.sub("", name).strip()
    return name or None


def _to_weight(raw: str) -> float | None:
    weight = float(raw)
    if MIN_WEIGHT_KG <= weight <= MAX_WEIGHT_KG:
        return weight
    return None


def _full_year(raw: str | None, today: date) -> int:
    if not raw:
        return today.year
    year = int(raw)
    return year + 2000 if year < 100 else year


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_date_string(date_str: str, today: date | None = None) -> date | None:
    """Parse DD/MM/YYYY, "15th January 2025" or "January 15, 2025" style dates.

    Two-digit years are read as 20xx and a missing year means the current year.
    Impossible calendar dates return None.
    """
    today = today or date.today()

    numeric = re.search(r"(\d{1,2})[/\-](\d{1,2})[/\-](\d{2,4})", date_str)
    if numeric:
        return _safe_date(_full_year(numeric.group(3), today), int(numeric.group(2)), int(numeric.group(1)))

    normalized = re.sub(r"(\d+)(?:st|nd|rd|th)", r"\1", date_str.lower())

    day_first = re.search(rf"(\d{{1,2}})\s+({_MONTHS})\s*,?\s*(\d{{2,4}})?", normalized)
    if day_first:
        month = _MONTH_NUMBERS[day_first.group(2)[:3]]
        return _safe_date(_full_year(day_first.group(3), today), month, int(day_first.group(1)))

    month_first = re.search(rf"({_MONTHS})\s+(\d{{1,2}})\s*,?\s*(\d{{2,4}})?", normalized)
    if month_first:
        month = _MONTH_NUMBERS[month_first.group(1)[:3]]
        return _safe_date(_full_year(month_first.group(3), today), month, int(month_first.group(2)))

    return None


def extract_boxer_name(query: str) -> str | None:
    """Extract the boxer name from a request phrase, with noise stripped."""
    return _first(NAME_RULES, query, _clean_name)


def extract_weight(query: str) -> float | None:
    """Extract a weight in kg, ignoring values outside 40-150kg."""
    return _first(WEIGHT_RULES, query, _to_weight)


def extract_date(query: str, today: date | None = None) -> str | None:
    """Extract a show date as an ISO string."""
    parsed = _first(DATE_RULES, query, lambda raw: parse_date_string(raw, today))
    return parsed.isoformat() if parsed else None


def extract_category(query: str) -> str | None:
    return _first(CATEGORY_RULES, query, str.lower)


# ═══════════════════════════════════════════
# MAIN PARSER
# ═══════════════════════════════════════════


def parse_match_intent(
    query: str,
    user_club_boxers: list[BoxerSnapshot],
    today: date | None = None,
) -> ParsedIntent:
    """Parse a natural language match request against the caller's roster.

    Args:
        query: Natural language query (e.g. "Find a match for Jake, 72kg")
        user_club_boxers: Boxers from the caller's own clubs
        today: Reference date for year-less dates (defaults to today)

    Returns:
        ParsedIntent; resolved, ambiguous, or carrying an error. Never raises.
    """
    if not isinstance(query, str):
        query = ""

    boxer_name = extract_boxer_name(query)
    weight = extract_weight(query)
    category = extract_category(query)
    show_date = extract_date(query, today)

    target_criteria = TargetCriteria(weight=weight, category=category)
    base = {"target_criteria": target_criteria, "show_date": show_date, "parser_used": "deterministic"}

    if not boxer_name:
        return ParsedIntent(**base, confidence="low", error="Could not identify boxer name in query")

    matches = find_boxers_by_name(boxer_name, user_club_boxers)
    logger.debug("Roster name lookup", name=boxer_name, match_count=len(matches))

    if not matches:
        return ParsedIntent(
            **base,
            source_boxer_name=boxer_name,
            confidence="low",
            error=f'No boxer named "{boxer_name}" found in your club roster',
        )

    best = matches[0]
    if len(matches) == 1 or best.score > HIGH_CONFIDENCE_SCORE:
        return ParsedIntent(
            **base,
            source_boxer_id=best.boxer.boxer_id,
            source_boxer_name=best.boxer.full_name,
            confidence="high" if best.score > HIGH_CONFIDENCE_SCORE else "medium",
        )

    close_matches = [m for m in matches if best.score - m.score < AMBIGUITY_BAND]
    if len(close_matches) == 1:
        return ParsedIntent(
            **base,
            source_boxer_id=best.boxer.boxer_id,
            source_boxer_name=best.boxer.full_name,
            confidence="medium",
        )

    return ParsedIntent(
        **base,
        source_boxer_name=boxer_name,
        confidence="low",
        error=f'Multiple boxers match "{boxer_name}". Please specify more clearly.',
        ambiguous_matches=[
            AmbiguousMatch(boxer_id=m.boxer.boxer_id, name=m.boxer.full_name)
            for m in close_matches[:MAX_AMBIGUOUS_MATCHES]
        ],
    )
