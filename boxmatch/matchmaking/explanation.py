"""Match explanation generation.

Template explanations are always available. The model-backed generator
receives the same sanitising, budget and timeout treatment as assisted
parsing and silently defers to the template on any failure, so callers get
a plain string either way.
"""

import asyncio

from loguru import logger

from boxmatch.config.settings import settings
from boxmatch.matchmaking.llm_service import complete_with_timeout, sanitize_input
from boxmatch.matchmaking.rate_limit import RateLimiter
from boxmatch.matchmaking.types import BoxerSnapshot, MatchCandidate, TargetCriteria
from boxmatch.services.llm.model import ModelClient

MAX_EXPLAINED_MATCHES = 5

EXPLANATION_PROMPT = """You are a boxing matchmaking assistant. Generate a brief, helpful explanation of the match results.

Focus on:
- Why these matches are compatible (weight, experience, age)
- Any notable considerations for each match
- Encouragement if no perfect matches found

Keep responses concise (2-3 sentences for overview, 1 sentence per top match).
Use plain language suitable for club officials who may not be technical.
Do not use markdown formatting."""


def _plural(count: int, singular: str, plural: str) -> str:
    return singular if count == 1 else plural


# ═══════════════════════════════════════════
# TEMPLATES
# ═══════════════════════════════════════════


def build_template_explanation(source: BoxerSnapshot, match_count: int, criteria: TargetCriteria) -> str:
    """Short summary used when explanation generation is switched off."""
    if match_count == 0:
        return " ".join(
            [
                f"No compliant matches found for {source.full_name}.",
                f"Searched for {source.gender} boxers in the {source.category} category",
                f"around {source.declared_weight:g}kg.",
                "Try broadening your search criteria or check back later as more boxers become available.",
            ]
        )

    parts = [
        f"Found {match_count} potential {_plural(match_count, 'match', 'matches')} for",
        source.full_name,
        f"({source.declared_weight:g}kg, {source.declared_bouts} bouts).",
        "Matches are ranked by compatibility based on",
        "weight, age, and experience level.",
    ]
    if criteria.weight:
        parts.append(f"Target weight: {criteria.weight:g}kg.")
    return " ".join(parts)


def build_fallback_explanation(source: BoxerSnapshot, matches: list[MatchCandidate]) -> str:
    """Template stand-in for the model-generated explanation."""
    if not matches:
        return (
            f"No compliant matches found for {source.full_name} "
            f"({source.declared_weight:g}kg, {source.category}). "
            "Try adjusting your search criteria or check back later."
        )

    top = matches[0]
    parts = [
        f"Found {len(matches)} potential {_plural(len(matches), 'match', 'matches')} for {source.full_name}.",
        (
            f"Top match: {top.full_name} from {top.club_name} "
            f"({top.declared_weight:g}kg, {top.declared_bouts} bouts) "
            f"with a compatibility score of {top.compliance_score}/100."
        ),
    ]
    if len(matches) > 1:
        others = len(matches) - 1
        parts.append(f"{others} additional compatible {_plural(others, 'opponent', 'opponents')} found.")
    return " ".join(parts)


def build_no_matches_explanation(source: BoxerSnapshot, total_candidates: int, filtered_out: int) -> str:
    """Explain an empty result, distinguishing an empty pool from a filtered one."""
    parts = [f"No compliant matches found for {source.full_name}."]

    if total_candidates == 0:
        parts.append(
            f"No {source.gender} boxers in the {source.category} category are currently listed as available."
        )
        parts.append("Check back later as more clubs add their rosters.")
    elif filtered_out > 0:
        if filtered_out == total_candidates:
            parts.append(f"Found {total_candidates} potential candidates.")
        else:
            parts.append(f"Found {total_candidates} potential candidates ({filtered_out} filtered for compliance).")
        parts.extend(
            [
                "Matches were excluded due to:",
                "- Weight difference outside acceptable range",
                "- Experience level mismatch",
                "- Age requirements not met",
                "Try adjusting your search criteria or check back as more boxers become available.",
            ]
        )
    else:
        parts.append("No suitable opponents match the compliance criteria at this time.")

    return " ".join(parts)


# ═══════════════════════════════════════════
# MODEL-BACKED GENERATION
# ═══════════════════════════════════════════


class ExplanationGenerator:
    """Generates match explanations with a model, falling back to templates.

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

    async def generate(
        self,
        source: BoxerSnapshot,
        matches: list[MatchCandidate],
        query: str,
        user_id: str,
    ) -> str:
        """Explain the ranked matches. Never raises."""
        try:
            text = await self._generate(source, matches, query, user_id)
        except Exception as e:
            logger.warning(
                "LLM explanation failed, using fallback",
                user_id=user_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            text = None
        return text or build_fallback_explanation(source, matches)

    async def _generate(
        self,
        source: BoxerSnapshot,
        matches: list[MatchCandidate],
        query: str,
        user_id: str,
    ) -> str | None:
        if self.client is None:
            return None
        if not await asyncio.to_thread(self.limiter.check, user_id):
            logger.info("LLM rate limited, using template explanation", user_id=user_id)
            return None

        match_lines = "\n".join(
            f"{i}. {m.full_name} ({m.club_name}) - {m.declared_weight:g}kg, "
            f"{m.declared_bouts} bouts, score: {m.compliance_score}/100"
            for i, m in enumerate(matches[:MAX_EXPLAINED_MATCHES], start=1)
        )
        source_line = (
            f"Source boxer: {source.full_name}, {source.declared_weight:g}kg, "
            f"{source.declared_bouts} bouts, {source.category} category"
        )
        user_message = (
            f"{source_line}\n\nMatches found:\n{match_lines}\n\nOriginal query: \"{sanitize_input(query)}\""
        )

        reply = await complete_with_timeout(self.client, EXPLANATION_PROMPT, user_message, self.timeout_seconds)
        return reply.strip() or None
