"""Matchmaking data contracts.

Boxer snapshots come from the data layer and are read-only here. Everything
else (parsed intents, compliance results, candidates) is built per request and
never persisted. Age is always derived from date of birth, never stored.

Models serialise with camelCase aliases so the HTTP contract reads
``naturalLanguageQuery``, ``sourceBoxerId`` and so on, while Python code uses
snake_case names.
"""

from datetime import date
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator
from pydantic.alias_generators import to_camel

Gender = Literal["male", "female"]
Availability = Literal["available", "unavailable", "injured"]
Confidence = Literal["high", "medium", "low"]
ParserUsed = Literal["assisted", "deterministic"]


class CamelModel(BaseModel):
    """Base model serialising to camelCase while accepting either form."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ═══════════════════════════════════════════
# BOXERS
# ═══════════════════════════════════════════


class BoxerSnapshot(CamelModel):
    """Public-safe boxer record as supplied by the data layer.

    Never carries club-private notes.
    """

    boxer_id: str
    first_name: str
    last_name: str
    dob: date
    gender: Gender
    category: str
    declared_weight: float
    declared_bouts: int = 0
    declared_wins: int = 0
    declared_losses: int = 0
    availability: Availability = "available"
    club_id: str
    club_name: str = "Unknown Club"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def age(self) -> int:
        """Age today. Derived on every access, never stored."""
        # compliance imports this module
        from boxmatch.matchmaking.compliance import calculate_age_at_date

        return calculate_age_at_date(self.dob, date.today())


# ═══════════════════════════════════════════
# INTENT
# ═══════════════════════════════════════════


class TargetCriteria(CamelModel):
    """Criteria extracted from the query. Absent fields mean unconstrained."""

    weight: float | None = None
    category: str | None = None
    additional_criteria: list[str] = Field(default_factory=list)


class AmbiguousMatch(CamelModel):
    boxer_id: str
    name: str


class ParsedIntent(CamelModel):
    """Structured intent extracted from a natural language match request."""

    source_boxer_id: str | None = None
    source_boxer_name: str | None = None
    target_criteria: TargetCriteria = Field(default_factory=TargetCriteria)
    show_date: str | None = None
    confidence: Confidence = "low"
    parser_used: ParserUsed = "deterministic"
    error: str | None = None
    ambiguous_matches: list[AmbiguousMatch] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_resolution_invariants(self) -> "ParsedIntent":
        if self.source_boxer_id is not None and self.error is not None:
            raise ValueError("a resolved intent cannot carry an error")
        if self.ambiguous_matches and self.source_boxer_id is not None:
            raise ValueError("an ambiguous intent cannot be resolved")
        return self


class LLMIntentParseResult(BaseModel):
    """Validated content of a model intent reply."""

    success: bool
    boxer_name: str | None = None
    weight: float | None = None
    criteria: list[str] = Field(default_factory=list)
    error: str | None = None


# ═══════════════════════════════════════════
# COMPLIANCE
# ═══════════════════════════════════════════


class ComplianceCheckResult(CamelModel):
    """Result of a single compliance dimension (age, weight or experience)."""

    passed: bool
    score: int
    details: str
    source_value: float
    target_value: float
    difference: float
    tolerance: float


class ComplianceIssue(CamelModel):
    """Blocking compliance issue."""

    type: Literal["age", "weight", "experience", "category", "availability"]
    severity: Literal["high", "medium"]
    message: str


class ComplianceWarning(CamelModel):
    """Non-blocking note about a compliant pairing."""

    type: Literal["age", "weight", "experience", "record"]
    message: str


class ComplianceChecks(CamelModel):
    age: ComplianceCheckResult
    weight: ComplianceCheckResult
    experience: ComplianceCheckResult


class ComplianceResult(CamelModel):
    is_compliant: bool
    score: int
    issues: list[ComplianceIssue] = Field(default_factory=list)
    warnings: list[ComplianceWarning] = Field(default_factory=list)
    checks: ComplianceChecks


class AgeRange(BaseModel):
    min: int
    max: int


class ComplianceRules(BaseModel):
    """Compliance thresholds. Defaults follow England Boxing guidance."""

    age_ranges: dict[str, AgeRange]
    max_age_difference: dict[str, int]
    weight_tolerances: dict[str, float]
    experience_tolerances: dict[str, int]


DEFAULT_COMPLIANCE_RULES = ComplianceRules(
    age_ranges={
        "junior": AgeRange(min=10, max=14),
        "youth": AgeRange(min=14, max=17),
        "elite": AgeRange(min=17, max=40),
    },
    max_age_difference={"junior": 2, "youth": 2, "elite": 5},
    weight_tolerances={"light": 1, "medium": 2, "heavy": 3},
    experience_tolerances={"novice": 2, "intermediate": 4, "experienced": 6},
)


# ═══════════════════════════════════════════
# REQUEST / RESPONSE
# ═══════════════════════════════════════════


class MatchCandidate(BoxerSnapshot):
    """Opponent candidate with derived compliance data."""

    age_at_show_date: int
    compliance_score: int
    compliance_notes: list[str] = Field(default_factory=list)
    compliance: ComplianceResult


class FindMatchOptions(CamelModel):
    limit: int | None = None
    include_explanation: bool = True


class FindMatchRequest(CamelModel):
    natural_language_query: str
    boxer_id: str | None = None
    show_date: str | None = None
    options: FindMatchOptions = Field(default_factory=FindMatchOptions)


class FindMatchResponse(CamelModel):
    success: bool
    matches: list[MatchCandidate] = Field(default_factory=list)
    explanation: str
    parsed_intent: ParsedIntent
    source_boxer: BoxerSnapshot | None = None
    total: int = 0
    filtered: int = 0


class SearchBoxersRequest(CamelModel):
    """Direct discovery filters. Validated by the search service, not here."""

    gender: str | None = None
    category: str | None = None
    weight_min: float | None = None
    weight_max: float | None = None
    availability: str | None = None
    exclude_own_club: bool = True
    limit: int | None = None
    offset: int | None = None


class SearchBoxersResponse(CamelModel):
    success: bool
    boxers: list[BoxerSnapshot] = Field(default_factory=list)
    total: int = 0
    has_more: bool = False
