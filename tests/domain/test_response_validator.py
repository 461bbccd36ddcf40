"""Tests for provider response validation and recovery."""

import json
import sys

import pytest

from resume_enhancer.domain.response_validator import (
    ResponseKind,
    ValidationOptions,
    format_validation_report,
    validate_improvements_only,
    validate_response,
    validate_resume_structure_only,
)


def make_review(**overrides):
    review = {
        "strengths": ["Strong Python background"],
        "weaknesses": ["No metrics"],
        "opportunities": ["Highlight AWS"],
        "prioritizedActions": [
            {"type": "enhance", "section": "experience[0]", "priority": "high", "reason": "Add numbers"}
        ],
        "confidence": 0.8,
    }
    review.update(overrides)
    return {"reviewResult": review}


def make_improvement(**overrides):
    item = {
        "type": "bulletPoint",
        "section": "experience[0]",
        "original": "Fixed bugs",
        "suggested": "Resolved 40+ production defects",
        "reason": "Quantified impact",
        "confidence": 0.9,
    }
    item.update(overrides)
    return item


@pytest.fixture
def enhancement(sample_resume):
    return {
        "enhancedResume": sample_resume,
        "improvements": [make_improvement()],
        "reasoning": "Focused on impact",
        "confidence": 0.85,
    }


class TestReviewValidation:
    def test_valid_review(self):
        response = make_review()
        outcome = validate_response(response, ResponseKind.REVIEW)

        assert outcome.is_valid
        assert outcome.errors == []
        assert outcome.warnings == []
        assert outcome.suggestions == []
        assert outcome.recovery_attempted is False
        assert outcome.recovered_response is None
        assert outcome.usable_response == response

    def test_json_text_accepted(self):
        outcome = validate_response(json.dumps(make_review()), "review")
        assert outcome.is_valid
        assert outcome.usable_response == make_review()

    def test_optional_fields_only_warn(self):
        outcome = validate_response({"reviewResult": {"strengths": [], "weaknesses": []}}, ResponseKind.REVIEW)

        assert outcome.is_valid
        assert outcome.warnings == [
            '"reviewResult.opportunities" is missing (optional but recommended)',
            '"reviewResult.prioritizedActions" is missing (optional but recommended)',
            '"reviewResult.confidence" is missing (optional but recommended)',
        ]

    def test_missing_review_result_is_rebuilt(self):
        outcome = validate_response({"analysis": "looks fine"}, ResponseKind.REVIEW)

        assert not outcome.is_valid
        assert outcome.errors == ['Review response missing "reviewResult" field']
        assert outcome.recovery_attempted
        assert "Response structure issues were automatically recovered" in outcome.warnings
        assert outcome.recovered_response == {
            "analysis": "looks fine",
            "reviewResult": {
                "strengths": [],
                "weaknesses": [],
                "opportunities": [],
                "prioritizedActions": [],
                "confidence": 0.5,
            },
        }
        assert outcome.usable_response is outcome.recovered_response
        assert any("reviewResult" in s for s in outcome.suggestions)

    def test_required_array_missing(self):
        response = make_review()
        del response["reviewResult"]["weaknesses"]
        outcome = validate_response(response, ResponseKind.REVIEW)

        assert outcome.errors == ['"reviewResult.weaknesses" is required']
        assert outcome.recovered_response["reviewResult"]["weaknesses"] == []

    def test_non_string_items_filtered(self):
        outcome = validate_response(make_review(strengths=["good", 3, None]), ResponseKind.REVIEW)

        assert outcome.errors == [
            '"reviewResult.strengths[1]" must be a string',
            '"reviewResult.strengths[2]" must be a string',
        ]
        assert outcome.recovered_response["reviewResult"]["strengths"] == ["good"]
        assert 'Review result must include a "strengths" array of strings' in outcome.suggestions

    def test_invalid_actions_dropped(self):
        actions = [
            {"type": "enhance", "section": "summary", "priority": "high", "reason": "Align"},
            {"type": "add", "priority": "low"},
            "reorder skills",
        ]
        outcome = validate_response(make_review(prioritizedActions=actions), ResponseKind.REVIEW)

        assert outcome.errors == [
            '"reviewResult.prioritizedActions[1].reason" is required and must be a string',
            '"reviewResult.prioritizedActions[2]" must be an object',
        ]
        assert outcome.recovered_response["reviewResult"]["prioritizedActions"] == [actions[0]]
        assert "Each prioritized action needs string type, priority and reason fields" in outcome.suggestions
        assert not any("section" in s for s in outcome.suggestions)

    def test_action_without_section_is_accepted(self):
        actions = [{"type": "rewrite", "priority": "medium", "reason": "Lead with impact"}]
        outcome = validate_response(make_review(prioritizedActions=actions), ResponseKind.REVIEW)

        assert outcome.is_valid
        assert outcome.suggestions == []

    @pytest.mark.parametrize(
        "confidence,error",
        [
            (1.5, '"reviewResult.confidence" must be between 0 and 1'),
            (-0.1, '"reviewResult.confidence" must be between 0 and 1'),
            ("high", '"reviewResult.confidence" must be a number'),
            (True, '"reviewResult.confidence" must be a number'),
        ],
    )
    def test_bad_confidence_defaulted(self, confidence, error):
        outcome = validate_response(make_review(confidence=confidence), ResponseKind.REVIEW)

        assert outcome.errors == [error]
        assert outcome.recovered_response["reviewResult"]["confidence"] == 0.5
        assert "Confidence score must be a number between 0 and 1" in outcome.suggestions

    def test_recovery_disabled(self):
        outcome = validate_response(
            {"analysis": "x"}, ResponseKind.REVIEW, ValidationOptions(attempt_recovery=False)
        )

        assert not outcome.is_valid
        assert outcome.recovery_attempted is False
        assert outcome.recovered_response is None
        assert outcome.usable_response is None

    def test_recovery_does_not_mutate_input(self):
        response = make_review(strengths=["good", 3])
        validate_response(response, ResponseKind.REVIEW)
        assert response["reviewResult"]["strengths"] == ["good", 3]


class TestParsing:
    def test_fenced_json_recovered(self):
        text = "Here is the review:\n```json\n" + json.dumps(make_review()) + "\n```"
        outcome = validate_response(text, ResponseKind.REVIEW)

        assert outcome.is_valid
        assert outcome.recovery_attempted
        assert outcome.warnings == ["JSON parsing errors were automatically recovered (fenced_block)"]
        assert outcome.recovered_response == make_review()

    def test_unparseable_text(self):
        outcome = validate_response("I'm sorry, I can't help with that.", ResponseKind.ENHANCEMENT)

        assert not outcome.is_valid
        assert outcome.errors[0].startswith("Failed to parse JSON")
        assert len(outcome.errors) > 1
        assert outcome.recovery_attempted
        assert outcome.usable_response is None
        assert (
            "Ensure the response is a single valid JSON object, not prose or another type" in outcome.suggestions
        )

    @pytest.mark.parametrize("attempt_recovery", [True, False])
    def test_deep_nesting_is_a_parse_error(self, attempt_recovery):
        outcome = validate_response(
            "[" * 200000, ResponseKind.REVIEW, ValidationOptions(attempt_recovery=attempt_recovery)
        )

        assert not outcome.is_valid
        assert outcome.errors[0].startswith("Failed to parse JSON")
        assert outcome.usable_response is None

    @pytest.mark.skipif(not hasattr(sys, "get_int_max_str_digits"), reason="no integer digit limit")
    def test_oversized_number_is_a_parse_error(self):
        text = json.dumps(make_review())[:-2] + ', "extra": ' + "9" * 5000 + "}}"
        outcome = validate_response(text, ResponseKind.REVIEW)

        assert not outcome.is_valid
        assert outcome.errors[0].startswith("Failed to parse JSON")
        assert outcome.usable_response is None

    def test_unparseable_without_recovery(self):
        outcome = validate_response("not json", ResponseKind.REVIEW, ValidationOptions(attempt_recovery=False))

        assert len(outcome.errors) == 1
        assert outcome.recovery_attempted is False

    def test_non_object_response(self):
        outcome = validate_response([1, 2, 3], ResponseKind.ENHANCEMENT)

        assert outcome.errors == ["Response must be a JSON object", "Cannot recover: response is not a JSON object"]
        assert outcome.usable_response is None

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            validate_response({}, "summary")


class TestEnhancementValidation:
    def test_valid_enhancement(self, enhancement):
        outcome = validate_response(enhancement, ResponseKind.ENHANCEMENT)

        assert outcome.is_valid
        assert outcome.errors == []
        assert outcome.usable_response == enhancement

    def test_missing_improvements_defaulted(self, sample_resume):
        outcome = validate_response({"enhancedResume": sample_resume}, ResponseKind.ENHANCEMENT)

        assert not outcome.is_valid
        assert outcome.errors == ['AI response missing "improvements" field']
        assert outcome.recovered_response == {"enhancedResume": sample_resume, "improvements": []}

    def test_missing_enhanced_resume_unrecoverable(self):
        outcome = validate_response({"improvements": []}, ResponseKind.ENHANCEMENT)

        assert outcome.errors == [
            'AI response missing "enhancedResume" field',
            "Cannot recover: enhancedResume is missing",
        ]
        assert outcome.recovery_attempted
        assert outcome.usable_response is None
        assert 'AI response must include an "enhancedResume" object' in outcome.suggestions

    def test_enhanced_resume_must_be_object(self):
        outcome = validate_response({"enhancedResume": "text", "improvements": []}, ResponseKind.ENHANCEMENT)

        assert outcome.errors == ['"enhancedResume" must be an object', "Cannot recover: enhancedResume is missing"]

    def test_mistyped_optional_fields_repaired(self, enhancement):
        enhancement.update({"reasoning": 5, "confidence": 2, "tokensUsed": "many"})
        outcome = validate_response(enhancement, ResponseKind.ENHANCEMENT)

        assert outcome.errors == [
            '"reasoning" must be a string',
            '"confidence" must be between 0 and 1',
            '"tokensUsed" must be a number',
        ]
        recovered = outcome.recovered_response
        assert "reasoning" not in recovered
        assert "tokensUsed" not in recovered
        assert recovered["confidence"] == 0.5

    def test_empty_resume_passes_structure(self):
        outcome = validate_response(
            {"enhancedResume": {}, "improvements": []},
            ResponseKind.ENHANCEMENT,
            ValidationOptions(validate_resume=False),
        )
        assert outcome.is_valid


class TestNestedValidation:
    def test_incomplete_resume_strict(self, enhancement):
        del enhancement["enhancedResume"]["personalInfo"]
        outcome = validate_response(enhancement, ResponseKind.ENHANCEMENT)

        assert not outcome.is_valid
        assert outcome.errors == ["personalInfo is required"]
        assert outcome.recovery_attempted is False
        assert outcome.usable_response is None
        assert (
            "Ensure the enhanced resume keeps all required fields: personalInfo, experience, etc."
            in outcome.suggestions
        )

    def test_incomplete_resume_lenient(self, enhancement):
        del enhancement["enhancedResume"]["personalInfo"]
        outcome = validate_response(
            enhancement, ResponseKind.ENHANCEMENT, ValidationOptions(strict_resume_validation=False)
        )

        assert outcome.is_valid
        assert outcome.warnings == ["personalInfo is required"]
        assert outcome.usable_response == enhancement

    def test_resume_check_disabled(self, enhancement):
        enhancement["enhancedResume"] = {"skills": ["Python"]}
        outcome = validate_response(enhancement, ResponseKind.ENHANCEMENT, ValidationOptions(validate_resume=False))
        assert outcome.is_valid

    def test_structural_recovery_blocked_by_nested_errors(self):
        outcome = validate_response({"enhancedResume": {}}, ResponseKind.ENHANCEMENT)

        assert outcome.recovery_attempted
        assert outcome.errors == [
            'AI response missing "improvements" field',
            "personalInfo is required",
            "experience is required and must be an array",
        ]
        assert outcome.recovered_response is None
        assert outcome.usable_response is None

    def test_custom_resume_validator(self, enhancement):
        outcome = validate_response(
            enhancement, ResponseKind.ENHANCEMENT, resume_validator=lambda resume: ["summary is too long"]
        )
        assert outcome.errors == ["summary is too long"]

    def test_resume_validator_failure_is_reported(self, enhancement):
        def explode(resume):
            raise RuntimeError("boom")

        outcome = validate_response(enhancement, ResponseKind.ENHANCEMENT, resume_validator=explode)
        assert outcome.errors == ["Resume validation failed: boom"]

    def test_improvement_errors(self, enhancement):
        enhancement["improvements"] = [
            make_improvement(type="rewrite", confidence=1.2),
            make_improvement(reason=None, confidence="high"),
            "added keywords",
        ]
        outcome = validate_response(enhancement, ResponseKind.ENHANCEMENT)

        assert outcome.errors == [
            "improvements[0].type must be one of: bulletPoint, summary, skill, keyword",
            "improvements[0].confidence must be between 0 and 1",
            "improvements[1].reason is required and must be a string",
            "improvements[1].confidence is required and must be a number",
            "improvements[2] must be an object",
        ]

    def test_improvement_check_disabled(self, enhancement):
        enhancement["improvements"] = ["anything"]
        outcome = validate_response(
            enhancement, ResponseKind.ENHANCEMENT, ValidationOptions(validate_improvements=False)
        )
        assert outcome.is_valid


class TestStandaloneChecks:
    def test_resume_structure_only(self, sample_resume):
        assert validate_resume_structure_only(sample_resume)
        assert not validate_resume_structure_only({"summary": "x"})
        assert validate_resume_structure_only({"summary": "x"}, strict=False)
        assert not validate_resume_structure_only("resume", strict=False)

    def test_resume_structure_only_custom_validator(self, sample_resume):
        assert not validate_resume_structure_only(sample_resume, resume_validator=lambda r: ["nope"])

    def test_improvements_only(self):
        assert validate_improvements_only([])
        assert validate_improvements_only([make_improvement(type="keyword")])
        assert not validate_improvements_only([make_improvement(type="other")])
        assert not validate_improvements_only("not a list")


class TestReport:
    def test_pass_report(self):
        report = format_validation_report(validate_response(make_review(), ResponseKind.REVIEW), "review.json")
        assert report == "## Validation: PASS -- review.json\n\nNo issues found."

    def test_fail_report(self):
        outcome = validate_response({"improvements": []}, ResponseKind.ENHANCEMENT)
        report = format_validation_report(outcome)

        assert report.startswith("## Validation: FAIL -- response")
        assert "Automatic recovery was attempted and did not produce a usable response." in report
        assert "### Errors\n- AI response missing \"enhancedResume\" field" in report
        assert "### Suggestions" in report
        assert "No issues found." not in report

    def test_to_dict(self):
        data = validate_response(make_review(confidence=3), ResponseKind.REVIEW).to_dict()
        assert data["is_valid"] is False
        assert data["recovery_attempted"] is True
        assert data["recovered_response"]["reviewResult"]["confidence"] == 0.5
