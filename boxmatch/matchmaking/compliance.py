"""Compliance evaluation between two boxers.

Computes eligibility and compatibility at request time. Nothing here is
persisted: age is derived from date of birth and the show date, and scores
are recomputed on every call.

Invariants:
- Age is calculated from DOB + show date
- A failed dimensional check is a blocking issue
- is_compliant holds iff there is no high-severity issue
"""

import math
from datetime import date

from boxmatch.matchmaking.types import (
    DEFAULT_COMPLIANCE_RULES,
    BoxerSnapshot,
    ComplianceCheckResult,
    ComplianceChecks,
    ComplianceIssue,
    ComplianceResult,
    ComplianceRules,
    ComplianceWarning,
)

WEIGHT_SCORE_FACTOR = 0.30
AGE_SCORE_FACTOR = 0.35
EXPERIENCE_SCORE_FACTOR = 0.35

AGE_WARNING_YEARS = 3
WEIGHT_WARNING_KG = 1.0
EXPERIENCE_WARNING_BOUTS = 3
WIN_RATE_WARNING_GAP = 0.3
WIN_RATE_MIN_BOUTS = 5

EXCELLENT_CHECK_SCORE = 90

DEFAULT_CATEGORY = "elite"


def round_score(value: float) -> int:
    """Round half up, so 92.5 scores 93."""
    return int(math.floor(value + 0.5))


def calculate_age_at_date(dob: date, target_date: date) -> int:
    """Calculate age in whole years at a specific date (e.g. the show date)."""
    age = target_date.year - dob.year
    if (target_date.month, target_date.day) < (dob.month, dob.day):
        age -= 1
    return age


# ═══════════════════════════════════════════
# DIMENSIONAL CHECKS
# ═══════════════════════════════════════════


def check_age_compliance(
    source_age: int,
    target_age: int,
    category: str,
    rules: ComplianceRules = DEFAULT_COMPLIANCE_RULES,
) -> ComplianceCheckResult:
    """Check both boxers fit the category age band and are close enough in age.

    Unknown categories use the elite band and tolerance.
    """
    key = category.lower()
    if key not in rules.age_ranges:
        key = DEFAULT_CATEGORY
    age_range = rules.age_ranges[key]
    max_difference = rules.max_age_difference[key]
    difference = abs(source_age - target_age)

    source_in_range = age_range.min <= source_age <= age_range.max
    target_in_range = age_range.min <= target_age <= age_range.max
    difference_ok = difference <= max_difference

    if source_in_range and target_in_range:
        score = max(0, 100 - difference * 10)
    else:
        score = 0

    if not source_in_range:
        details = f"Source boxer age {source_age} is outside {category} range ({age_range.min}-{age_range.max})"
    elif not target_in_range:
        details = f"Target boxer age {target_age} is outside {category} range ({age_range.min}-{age_range.max})"
    elif not difference_ok:
        details = f"Age difference of {difference} years exceeds maximum of {max_difference} for {category}"
    else:
        details = f"Age difference of {difference} years is within {category} limits"

    return ComplianceCheckResult(
        passed=source_in_range and target_in_range and difference_ok,
        score=score,
        details=details,
        source_value=source_age,
        target_value=target_age,
        difference=difference,
        tolerance=max_difference,
    )


def _weight_class(source_weight: float, rules: ComplianceRules) -> tuple[str, float]:
    if source_weight < 60:
        return "light", rules.weight_tolerances["light"]
    if source_weight <= 75:
        return "medium", rules.weight_tolerances["medium"]
    return "heavy", rules.weight_tolerances["heavy"]


def check_weight_compliance(
    source_weight: float,
    target_weight: float,
    category: str,
    rules: ComplianceRules = DEFAULT_COMPLIANCE_RULES,
) -> ComplianceCheckResult:
    """Check declared weights are within the source boxer's weight-class tolerance.

    Score is 100 for identical weights, falls linearly to 60 at the tolerance,
    then loses 20 points per extra kg down to 0. ``category`` is accepted for
    symmetry with the other checks; tolerance depends on weight class only.
    """
    weight_class, tolerance = _weight_class(source_weight, rules)
    difference = round(abs(source_weight - target_weight), 3)
    passed = difference <= tolerance

    if difference == 0:
        score = 100
    elif passed:
        score = round_score(100 - (difference / tolerance) * 40)
    else:
        score = max(0, round_score(60 - (difference - tolerance) * 20))

    verdict = "is within" if passed else "exceeds"
    return ComplianceCheckResult(
        passed=passed,
        score=score,
        details=f"Weight difference of {difference:.1f}kg {verdict} {tolerance:g}kg tolerance for {weight_class} weight class",
        source_value=source_weight,
        target_value=target_weight,
        difference=difference,
        tolerance=tolerance,
    )


def _experience_level(source_bouts: int, rules: ComplianceRules) -> tuple[str, int]:
    if source_bouts <= 5:
        return "novice", rules.experience_tolerances["novice"]
    if source_bouts <= 15:
        return "intermediate", rules.experience_tolerances["intermediate"]
    return "experienced", rules.experience_tolerances["experienced"]


def check_experience_compliance(
    source_bouts: int,
    target_bouts: int,
    rules: ComplianceRules = DEFAULT_COMPLIANCE_RULES,
) -> ComplianceCheckResult:
    """Check bout counts are within the source boxer's experience tolerance.

    Score is 100 for equal experience, falls linearly to 70 at the tolerance,
    then loses 15 points per extra bout down to 0.
    """
    level, tolerance = _experience_level(source_bouts, rules)
    difference = abs(source_bouts - target_bouts)
    passed = difference <= tolerance

    if difference == 0:
        score = 100
    elif passed:
        score = round_score(100 - (difference / tolerance) * 30)
    else:
        score = max(0, round_score(70 - (difference - tolerance) * 15))

    verdict = "is within" if passed else "exceeds"
    return ComplianceCheckResult(
        passed=passed,
        score=score,
        details=f"Experience difference of {difference} bouts {verdict} {tolerance} bout tolerance for {level} boxers",
        source_value=source_bouts,
        target_value=target_bouts,
        difference=difference,
        tolerance=tolerance,
    )


# ═══════════════════════════════════════════
# COMBINED EVALUATION
# ═══════════════════════════════════════════


def _win_rate(boxer: BoxerSnapshot) -> float:
    if boxer.declared_bouts <= 0:
        return 0.5
    return boxer.declared_wins / boxer.declared_bouts


def evaluate_match_compliance(
    source: BoxerSnapshot,
    target: BoxerSnapshot,
    show_date: date,
    rules: ComplianceRules = DEFAULT_COMPLIANCE_RULES,
) -> ComplianceResult:
    """Evaluate full compliance of a target boxer against the source boxer.

    Args:
        source: Boxer looking for a match
        target: Potential opponent
        show_date: Date of the show, used for age calculation
        rules: Compliance thresholds

    Returns:
        ComplianceResult with overall score, issues, warnings and per-check detail
    """
    issues: list[ComplianceIssue] = []
    warnings: list[ComplianceWarning] = []

    source_age = calculate_age_at_date(source.dob, show_date)
    target_age = calculate_age_at_date(target.dob, show_date)

    age_check = check_age_compliance(source_age, target_age, source.category, rules)
    weight_check = check_weight_compliance(source.declared_weight, target.declared_weight, source.category, rules)
    experience_check = check_experience_compliance(source.declared_bouts, target.declared_bouts, rules)

    if not age_check.passed:
        issues.append(ComplianceIssue(type="age", severity="high", message=age_check.details))
    if not weight_check.passed:
        issues.append(ComplianceIssue(type="weight", severity="high", message=weight_check.details))
    if not experience_check.passed:
        issues.append(ComplianceIssue(type="experience", severity="medium", message=experience_check.details))

    if source.category.lower() != target.category.lower():
        issues.append(
            ComplianceIssue(
                type="category",
                severity="high",
                message=f"Category mismatch: {source.category} vs {target.category}",
            )
        )
    if source.gender != target.gender:
        issues.append(
            ComplianceIssue(
                type="category",
                severity="high",
                message=f"Gender mismatch: {source.gender} vs {target.gender}",
            )
        )
    if target.availability != "available":
        issues.append(
            ComplianceIssue(
                type="availability",
                severity="high",
                message=f"Target boxer is {target.availability}",
            )
        )

    if age_check.passed and age_check.difference >= AGE_WARNING_YEARS:
        warnings.append(
            ComplianceWarning(type="age", message=f"Age difference of {age_check.difference:g} years is significant")
        )
    if weight_check.passed and weight_check.difference > WEIGHT_WARNING_KG:
        warnings.append(
            ComplianceWarning(
                type="weight",
                message=f"Weight difference of {weight_check.difference:.1f}kg - consider weigh-in verification",
            )
        )
    if experience_check.passed and experience_check.difference >= EXPERIENCE_WARNING_BOUTS:
        warnings.append(
            ComplianceWarning(
                type="experience",
                message=f"Experience difference of {experience_check.difference:g} bouts - check records",
            )
        )

    source_win_rate = _win_rate(source)
    target_win_rate = _win_rate(target)
    if (
        abs(source_win_rate - target_win_rate) > WIN_RATE_WARNING_GAP
        and source.declared_bouts >= WIN_RATE_MIN_BOUTS
        and target.declared_bouts >= WIN_RATE_MIN_BOUTS
    ):
        warnings.append(
            ComplianceWarning(
                type="record",
                message=(
                    f"Significant win rate difference "
                    f"({round_score(source_win_rate * 100)}% vs {round_score(target_win_rate * 100)}%)"
                ),
            )
        )

    overall_score = round_score(
        weight_check.score * WEIGHT_SCORE_FACTOR
        + age_check.score * AGE_SCORE_FACTOR
        + experience_check.score * EXPERIENCE_SCORE_FACTOR
    )

    return ComplianceResult(
        is_compliant=not any(issue.severity == "high" for issue in issues),
        score=overall_score,
        issues=issues,
        warnings=warnings,
        checks=ComplianceChecks(age=age_check, weight=weight_check, experience=experience_check),
    )


def generate_compliance_notes(result: ComplianceResult) -> list[str]:
    """Turn a compliance result into short human-readable notes."""
    if not result.is_compliant:
        return ["Non-compliant match"] + [f"Issue: {issue.message}" for issue in result.issues]

    notes = [f"Compliance score: {result.score}/100"]
    if result.checks.weight.score >= EXCELLENT_CHECK_SCORE:
        notes.append("Excellent weight match")
    if result.checks.age.score >= EXCELLENT_CHECK_SCORE:
        notes.append("Excellent age match")
    if result.checks.experience.score >= EXCELLENT_CHECK_SCORE:
        notes.append("Similar experience levels")
    notes.extend(f"Note: {warning.message}" for warning in result.warnings)
    return notes
