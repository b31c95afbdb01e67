"""Tests for compliance evaluation."""

from datetime import date

import pytest

from boxmatch.matchmaking.compliance import (
    calculate_age_at_date,
    check_age_compliance,
    check_experience_compliance,
    check_weight_compliance,
    evaluate_match_compliance,
    generate_compliance_notes,
    round_score,
)


class TestCalculateAgeAtDate:
    def test_birthday_already_passed(self):
        assert calculate_age_at_date(date(2000, 3, 15), date(2025, 6, 1)) == 25

    def test_birthday_not_yet_reached(self):
        assert calculate_age_at_date(date(2000, 8, 15), date(2025, 6, 1)) == 24

    def test_on_birthday(self):
        assert calculate_age_at_date(date(2000, 6, 1), date(2025, 6, 1)) == 25

    def test_pure(self):
        dob, ref = date(1999, 12, 31), date(2025, 1, 1)
        assert calculate_age_at_date(dob, ref) == calculate_age_at_date(dob, ref)


class TestRoundScore:
    @pytest.mark.parametrize(("value", "expected"), [(92.5, 93), (92.4, 92), (0.5, 1), (50.0, 50)])
    def test_rounds_half_up(self, value, expected):
        assert round_score(value) == expected


class TestAgeCompliance:
    def test_within_elite_tolerance(self):
        result = check_age_compliance(22, 27, "elite")

        assert result.passed is True
        assert result.score == 50
        assert result.difference == 5
        assert result.tolerance == 5

    def test_exceeds_elite_tolerance(self):
        result = check_age_compliance(22, 28, "elite")

        assert result.passed is False
        assert result.difference == 6
        assert "exceeds maximum" in result.details

    def test_outside_band_scores_zero(self):
        result = check_age_compliance(15, 16, "elite")

        assert result.passed is False
        assert result.score == 0
        assert "outside elite range (17-40)" in result.details

    def test_unknown_category_uses_elite_rules(self):
        result = check_age_compliance(20, 24, "masters")

        assert result.passed is True
        assert result.tolerance == 5

    def test_youth_tolerance(self):
        assert check_age_compliance(14, 16, "youth").passed is True
        assert check_age_compliance(14, 17, "youth").passed is False


class TestWeightCompliance:
    @pytest.mark.parametrize("weight", [50.0, 72.0, 91.5])
    def test_identical_weight_is_perfect(self, weight):
        result = check_weight_compliance(weight, weight, "elite")

        assert result.passed is True
        assert result.score == 100
        assert result.difference == 0

    def test_within_medium_tolerance(self):
        result = check_weight_compliance(72.0, 73.0, "elite")

        assert result.passed is True
        assert result.score == 80
        assert result.tolerance == 2
        assert result.details == "Weight difference of 1.0kg is within 2kg tolerance for medium weight class"

    def test_at_tolerance_boundary_passes(self):
        result = check_weight_compliance(72.0, 74.0, "elite")

        assert result.passed is True
        assert result.score == 60

    def test_beyond_tolerance(self):
        result = check_weight_compliance(72.0, 75.0, "elite")

        assert result.passed is False
        assert result.score == 40

    def test_light_class_tolerance(self):
        result = check_weight_compliance(55.0, 56.5, "elite")

        assert result.passed is False
        assert result.tolerance == 1

    def test_heavy_class_tolerance(self):
        assert check_weight_compliance(90.0, 93.0, "elite").passed is True

    def test_fractional_boundary(self):
        assert check_weight_compliance(70.1, 72.1, "elite").passed is True


class TestExperienceCompliance:
    def test_novice_within_tolerance(self):
        result = check_experience_compliance(3, 5)

        assert result.passed is True
        assert result.difference == 2
        assert result.score == 70

    def test_novice_beyond_tolerance(self):
        result = check_experience_compliance(2, 6)

        assert result.passed is False
        assert result.difference == 4
        assert result.tolerance == 2
        assert result.score == 40

    def test_experienced_tolerance(self):
        result = check_experience_compliance(20, 26)

        assert result.passed is True
        assert result.tolerance == 6


class TestEvaluateMatchCompliance:
    def test_compatible_pair(self, make_boxer, show_date):
        source = make_boxer(boxer_id="src", declared_weight=72, declared_bouts=10)
        target = make_boxer(boxer_id="tgt", declared_weight=73, declared_bouts=12, club_id="club-b")

        result = evaluate_match_compliance(source, target, show_date)

        assert result.is_compliant is True
        assert result.issues == []
        # weight 80, age 100, experience 85
        assert result.score == round_score(80 * 0.30 + 100 * 0.35 + 85 * 0.35)

    def test_gender_mismatch_is_blocking(self, make_boxer, show_date):
        source = make_boxer(boxer_id="src")
        target = make_boxer(boxer_id="tgt", gender="female", club_id="club-b")

        result = evaluate_match_compliance(source, target, show_date)

        assert result.is_compliant is False
        assert any(i.type == "category" and "Gender mismatch" in i.message for i in result.issues)

    def test_category_mismatch_is_blocking(self, make_boxer, show_date):
        source = make_boxer(boxer_id="src")
        target = make_boxer(boxer_id="tgt", category="youth", club_id="club-b")

        result = evaluate_match_compliance(source, target, show_date)

        assert result.is_compliant is False
        assert any(i.message == "Category mismatch: elite vs youth" for i in result.issues)

    def test_unavailable_target_is_blocking(self, make_boxer, show_date):
        target = make_boxer(boxer_id="tgt", availability="injured", club_id="club-b")

        result = evaluate_match_compliance(make_boxer(), target, show_date)

        assert result.is_compliant is False
        assert any(i.type == "availability" and i.message == "Target boxer is injured" for i in result.issues)

    def test_experience_failure_is_not_blocking(self, make_boxer, show_date):
        source = make_boxer(declared_bouts=2)
        target = make_boxer(boxer_id="tgt", declared_bouts=6, club_id="club-b")

        result = evaluate_match_compliance(source, target, show_date)

        assert result.is_compliant is True
        assert [i.severity for i in result.issues] == ["medium"]

    def test_warnings(self, make_boxer, show_date):
        source = make_boxer(dob=date(2000, 1, 1), declared_weight=72, declared_bouts=10, declared_wins=9)
        target = make_boxer(
            boxer_id="tgt",
            dob=date(1996, 1, 1),
            declared_weight=73.5,
            declared_bouts=13,
            declared_wins=3,
            club_id="club-b",
        )

        result = evaluate_match_compliance(source, target, show_date)

        assert result.is_compliant is True
        assert {w.type for w in result.warnings} == {"age", "weight", "experience", "record"}
        record = next(w for w in result.warnings if w.type == "record")
        assert record.message == "Significant win rate difference (90% vs 23%)"

    def test_no_record_warning_for_novices(self, make_boxer, show_date):
        source = make_boxer(declared_bouts=4, declared_wins=4)
        target = make_boxer(boxer_id="tgt", declared_bouts=4, declared_wins=0, club_id="club-b")

        result = evaluate_match_compliance(source, target, show_date)

        assert all(w.type != "record" for w in result.warnings)


class TestGenerateComplianceNotes:
    def test_compliant_notes(self, make_boxer, show_date):
        result = evaluate_match_compliance(make_boxer(), make_boxer(boxer_id="tgt", club_id="club-b"), show_date)

        notes = generate_compliance_notes(result)

        assert notes == [
            "Compliance score: 100/100",
            "Excellent weight match",
            "Excellent age match",
            "Similar experience levels",
        ]

    def test_non_compliant_notes(self, make_boxer, show_date):
        target = make_boxer(boxer_id="tgt", gender="female", club_id="club-b")
        result = evaluate_match_compliance(make_boxer(), target, show_date)

        notes = generate_compliance_notes(result)

        assert notes[0] == "Non-compliant match"
        assert "Issue: Gender mismatch: male vs female" in notes
