"""Model-assisted intent parsing.

The model is advisory only. It may propose a boxer name, a weight and free-form
criteria; the name is then resolved by the same deterministic roster lookup the
regex parser uses, and compliance is never delegated to it.

Every failure mode falls back to the deterministic parser on the original,
unsanitised query:
- no credential configured
- per-user model budget exhausted
- model call slower than the configured timeout
- reply that is not a JSON object of the expected shape
- null or unresolvable boxer name
- any unexpected exception
"""

import asyncio
import json
import re
from dataclasses import dataclass
from datetime import date

from loguru import logger

from boxmatch.config.settings import settings
from boxmatch.matchmaking.intent_parser import (
    MAX_WEIGHT_KG,
    MIN_WEIGHT_KG,
    extract_category,
    extract_date,
    extract_weight,
    parse_match_intent,
)
from boxmatch.matchmaking.rate_limit import RateLimiter
from boxmatch.matchmaking.types import BoxerSnapshot, LLMIntentParseResult, ParsedIntent, TargetCriteria
from boxmatch.services.llm.model import ModelClient

MAX_INPUT_LENGTH = 500

INTENT_PARSING_PROMPT = """You are a boxing matchmaking assistant. Parse the user's match request and extract structured information.

Given the user's query, extract:
1. boxer_name: The name of the boxer to find a match for (required)
2. weight_kg: Target weight in kilograms if specified (number or null)
3. criteria: Any additional criteria mentioned (array of strings)

IMPORTANT:
- Only extract information explicitly stated in the query
- Do not infer or assume values not mentioned
- If boxer name is unclear, set to null
- Weight must be a number (no units)

Respond with ONLY valid JSON in this exact format:
{"boxer_name": "string or null", "weight_kg": number or null, "criteria": ["string"]}"""

_ROLE_MARKERS = re.compile(r"\b(?:system|assistant|human|user)\s*:", re.IGNORECASE)
_MARKUP_TAGS = re.compile(r"</?[^>]+(?:>|$)")
_WHITESPACE = re.compile(r"\s+")
_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


class ModelTimeoutError(TimeoutError):
    """The model did not answer within the configured timeout."""


def sanitize_input(text: str) -> str:
    """Strip role markers and markup, collapse whitespace, cap at 500 chars."""
    sanitized = _ROLE_MARKERS.sub("", text)
    sanitized = _MARKUP_TAGS.sub("", sanitized)
    sanitized = _WHITESPACE.sub(" ", sanitized).strip()
    return sanitized[:MAX_INPUT_LENGTH]


def _discard_late_result(task: asyncio.Task) -> None:
    if not task.cancelled() and task.exception() is not None:
        logger.debug("Late LLM call failed after timeout", error_type=type(task.exception()).__name__)


async def complete_with_timeout(
    client: ModelClient,
    system_prompt: str,
    user_message: str,
    timeout_seconds: float,
) -> str:
    """Race a model call against a timeout.

    Losing the race stops waiting but leaves the call running; its eventual
    result is discarded.

    Raises:
        ModelTimeoutError: The call did not settle in time
    """
    task = asyncio.ensure_future(client.complete(system_prompt, user_message))
    done, _ = await asyncio.wait({task}, timeout=timeout_seconds)
    if task not in done:
        task.add_done_callback(_discard_late_result)
        raise ModelTimeoutError(f"LLM call exceeded {timeout_seconds}s")
    return task.result()


def parse_llm_response(text: str) -> LLMIntentParseResult:
    """Parse and validate a model intent reply.

    The first ``{...}`` block is read as JSON. Fields of the wrong type are
    treated as absent; a missing or non-object payload is a failure.
    """
    match = _JSON_OBJECT.search(text or "")
    if not match:
        return LLMIntentParseResult(success=False, error="No JSON found in response")

    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError:
        return LLMIntentParseResult(success=False, error="JSON parse error")

    if not isinstance(parsed, dict):
        return LLMIntentParseResult(success=False, error="Invalid JSON structure")

    boxer_name = parsed.get("boxer_name")
    weight = parsed.get("weight_kg")
    criteria = parsed.get("criteria")

    return LLMIntentParseResult(
        success=True,
        boxer_name=(boxer_name.strip() or None) if isinstance(boxer_name, str) else None,
        weight=float(weight) if isinstance(weight, int | float) and not isinstance(weight, bool) else None,
        criteria=[c for c in criteria if isinstance(c, str)] if isinstance(criteria, list) else [],
    )


# ═══════════════════════════════════════════
# PARSER OUTCOMES
# ═══════════════════════════════════════════


@dataclass(frozen=True)
class AssistedOutcome:
    """The model proposed a name that resolved against the roster."""

    intent: ParsedIntent


@dataclass(frozen=True)
class DeterministicOutcome:
    """The deterministic parser produced the intent.

    ``reason`` records why the model path was not used.
    """

    intent: ParsedIntent
    reason: str


ParserOutcome = AssistedOutcome | DeterministicOutcome


class AssistedIntentParser:
    """Intent parser that consults a language model before the regex rules.

    Args:
        client: Model client, or None when no credential is configured
        limiter: Per-user model budget (fail-open)
        timeout_seconds: Maximum wait for the model
    """

    def __init__(
        self,
        client: ModelClient | None,
        limiter: RateLimiter,
        timeout_seconds: float = settings.llm_timeout_seconds,
    ) -> None:
        self.client = client
        self.limiter = limiter
        self.timeout_seconds = timeout_seconds

    async def parse(
        self,
        query: str,
        user_club_boxers: list[BoxerSnapshot],
        user_id: str,
        today: date | None = None,
    ) -> ParserOutcome:
        """Parse a match request. Never raises."""
        try:
            return await self._parse(query, user_club_boxers, user_id, today)
        except Exception as e:
            logger.warning(
                "LLM intent parsing failed, falling back to deterministic parser",
                user_id=user_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            return self._fallback(query, user_club_boxers, today, reason="error")

    def _fallback(
        self,
        query: str,
        user_club_boxers: list[BoxerSnapshot],
        today: date | None,
        reason: str,
    ) -> DeterministicOutcome:
        return DeterministicOutcome(intent=parse_match_intent(query, user_club_boxers, today), reason=reason)

    async def _parse(
        self,
        query: str,
        user_club_boxers: list[BoxerSnapshot],
        user_id: str,
        today: date | None,
    ) -> ParserOutcome:
        if self.client is None:
            return self._fallback(query, user_club_boxers, today, reason="no_credential")

        if not await asyncio.to_thread(self.limiter.check, user_id):
            logger.info("LLM rate limited, falling back to deterministic parser", user_id=user_id)
            return self._fallback(query, user_club_boxers, today, reason="rate_limited")

        boxer_names = ", ".join(boxer.full_name for boxer in user_club_boxers)
        user_message = f'Available boxers in user\'s club: {boxer_names}\n\nUser query: "{sanitize_input(query)}"'

        try:
            reply = await complete_with_timeout(self.client, INTENT_PARSING_PROMPT, user_message, self.timeout_seconds)
        except ModelTimeoutError:
            logger.warning("LLM intent parsing timed out, falling back to deterministic parser", user_id=user_id)
            return self._fallback(query, user_club_boxers, today, reason="timeout")

        result = parse_llm_response(reply)

        if not result.success or not result.boxer_name:
            logger.info("LLM reply unusable, falling back to deterministic parser", error=result.error)
            return self._fallback(query, user_club_boxers, today, reason="invalid_reply")

        resolved = parse_match_intent(f"Find a match for {result.boxer_name}", user_club_boxers, today)
        if resolved.source_boxer_id is None:
            logger.info("LLM boxer name did not resolve, falling back to deterministic parser", name=result.boxer_name)
            return self._fallback(query, user_club_boxers, today, reason="unresolved_name")

        weight = result.weight
        if weight is None or not MIN_WEIGHT_KG <= weight <= MAX_WEIGHT_KG:
            weight = extract_weight(query)

        intent = resolved.model_copy(
            update={
                "target_criteria": TargetCriteria(
                    weight=weight,
                    category=extract_category(query),
                    additional_criteria=result.criteria,
                ),
                "show_date": extract_date(query, today),
                "confidence": "high",
                "parser_used": "assisted",
            }
        )
        return AssistedOutcome(intent=intent)
