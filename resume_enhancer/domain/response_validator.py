"""Validation and recovery of provider responses.

A response is either raw model text or an already-parsed object, and is
checked against one of two shapes:

- ``review``: ``{"reviewResult": {strengths, weaknesses, opportunities,
  prioritizedActions, confidence}}``
- ``enhancement``: ``{"enhancedResume": {...}, "improvements": [...]}`` plus
  optional ``reasoning``, ``confidence``, ``tokensUsed`` and ``cost``

Validation runs in stages: parse (with JSON recovery), structural check,
structural recovery, nested checks on the enhanced resume and improvements,
and finally remediation suggestions. Nothing here raises on malformed input;
every problem is reported on the returned :class:`ValidationOutcome`.
"""

from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from .json_recovery import recover_json
from .resume_validator import validate_resume_data

logger = logging.getLogger(__name__)

ResumeValidatorFn = Callable[[Any], List[str]]

VALID_IMPROVEMENT_TYPES = ("bulletPoint", "summary", "skill", "keyword")

REVIEW_STRING_ARRAYS = ("strengths", "weaknesses", "opportunities")
REQUIRED_REVIEW_ARRAYS = ("strengths", "weaknesses")
ACTION_STRING_FIELDS = ("type", "priority", "reason")
IMPROVEMENT_STRING_FIELDS = ("section", "original", "suggested", "reason")

DEFAULT_CONFIDENCE = 0.5


class ResponseKind(str, Enum):
    REVIEW = "review"
    ENHANCEMENT = "enhancement"


@dataclass
class ValidationOptions:
    attempt_recovery: bool = True
    strict_resume_validation: bool = True
    validate_resume: bool = True
    validate_improvements: bool = True


@dataclass
class ValidationOutcome:
    """Result of validating one response.

    ``errors`` keeps the structural errors of the response as given, followed
    by whatever is still wrong after recovery. ``recovered_response`` is set
    only when recovery produced an object with no remaining errors.
    ``parsed_response`` is the object that was last validated, if parsing
    succeeded at all.
    """

    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    recovery_attempted: bool = False
    recovered_response: Optional[Dict[str, Any]] = None
    parsed_response: Any = None

    @property
    def usable_response(self) -> Optional[Dict[str, Any]]:
        """The object callers may act on, or ``None`` if there is none."""
        if self.recovered_response is not None:
            return self.recovered_response
        if self.is_valid and isinstance(self.parsed_response, dict):
            return self.parsed_response
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "suggestions": list(self.suggestions),
            "recovery_attempted": self.recovery_attempted,
            "recovered_response": self.recovered_response,
        }


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate_response(
    response: Union[str, Any],
    kind: Union[ResponseKind, str],
    options: Optional[ValidationOptions] = None,
    resume_validator: Optional[ResumeValidatorFn] = None,
) -> ValidationOutcome:
    """Validate *response* against the *kind* shape, recovering where possible.

    Args:
        response: Raw model text or an already-parsed object
        kind: ``ResponseKind.REVIEW`` or ``ResponseKind.ENHANCEMENT``
        options: Validation switches (defaults to :class:`ValidationOptions`)
        resume_validator: Checks the enhanced resume; returns error strings.
            Defaults to :func:`validate_resume_data`.

    Returns:
        A :class:`ValidationOutcome`; this function never raises for bad input.
    """
    kind = ResponseKind(kind)
    opts = options or ValidationOptions()
    check_resume = resume_validator or validate_resume_data

    errors: List[str] = []
    warnings: List[str] = []
    recovery_attempted = False
    recovered = False

    logger.debug(f"Validating {kind.value} response")

    # Stage 1: parse
    parsed: Any = response
    if isinstance(response, str):
        try:
            parsed = json.loads(response)
        except (ValueError, RecursionError) as e:
            if not opts.attempt_recovery:
                errors.append(f"Failed to parse JSON: {e}")
                return _finish(kind, False, errors, warnings, recovery_attempted)

            recovery_attempted = True
            recovery = recover_json(response)
            if not recovery.success:
                errors.append(f"Failed to parse JSON: {e}")
                errors.extend(recovery.errors)
                return _finish(kind, False, errors, warnings, recovery_attempted)

            parsed = recovery.value
            recovered = True
            warnings.append(f"JSON parsing errors were automatically recovered ({recovery.strategy})")

    # Stage 2: structure
    structural_errors, structural_warnings = _check_structure(parsed, kind)
    errors.extend(structural_errors)
    warnings.extend(structural_warnings)
    remaining = list(structural_errors)

    # Stage 3: structural recovery
    if structural_errors and opts.attempt_recovery:
        recovery_attempted = True
        repaired, recovery_errors = _recover_structure(parsed, kind)
        if repaired is None:
            errors.extend(recovery_errors)
        else:
            warnings.append("Response structure issues were automatically recovered")
            remaining, rechecked_warnings = _check_structure(repaired, kind)
            errors.extend(remaining)
            warnings.extend(w for w in rechecked_warnings if w not in warnings)
            parsed = repaired
            recovered = True

    # Stage 4: nested checks
    if kind is ResponseKind.ENHANCEMENT and isinstance(parsed, Mapping):
        nested_errors, nested_warnings = _check_nested(parsed, opts, check_resume)
        errors.extend(nested_errors)
        warnings.extend(nested_warnings)
        remaining.extend(nested_errors)

    structurally_clean = not structural_errors
    is_valid = not errors
    outcome = _finish(kind, is_valid, errors, warnings, recovery_attempted, parsed)
    if recovered and not remaining and isinstance(parsed, dict):
        outcome.recovered_response = parsed

    logger.debug(
        f"Response validation complete. Valid: {is_valid}, structural: {structurally_clean}, "
        f"errors: {len(errors)}, warnings: {len(warnings)}"
    )
    return outcome


def validate_resume_structure_only(
    resume: Any,
    strict: bool = True,
    resume_validator: Optional[ResumeValidatorFn] = None,
) -> bool:
    """True when *resume* passes the resume collaborator.

    With ``strict=False`` collaborator findings are only warnings, so any
    object passes.
    """
    errors, _ = _check_resume(resume, strict, resume_validator or validate_resume_data)
    return not errors


def validate_improvements_only(improvements: Any) -> bool:
    return not _check_improvements(improvements)


# ---------------------------------------------------------------------------
# Report formatting
# ---------------------------------------------------------------------------


def format_validation_report(outcome: ValidationOutcome, label: str = "response") -> str:
    """Render a :class:`ValidationOutcome` as a human-readable report."""
    status = "PASS" if outcome.is_valid else "FAIL"
    lines = [f"## Validation: {status} -- {label}", ""]

    if outcome.recovery_attempted:
        result = "succeeded" if outcome.recovered_response is not None else "did not produce a usable response"
        lines.append(f"Automatic recovery was attempted and {result}.")
        lines.append("")

    for title, items in (
        ("Errors", outcome.errors),
        ("Warnings", outcome.warnings),
        ("Suggestions", outcome.suggestions),
    ):
        if items:
            lines.append(f"### {title}")
            lines.extend(f"- {item}" for item in items)
            lines.append("")

    if not outcome.errors and not outcome.warnings:
        lines.append("No issues found.")

    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Private checks
# ---------------------------------------------------------------------------


def _finish(
    kind: ResponseKind,
    is_valid: bool,
    errors: List[str],
    warnings: List[str],
    recovery_attempted: bool,
    parsed: Any = None,
) -> ValidationOutcome:
    return ValidationOutcome(
        is_valid=is_valid,
        errors=errors,
        warnings=warnings,
        suggestions=_suggestions(errors, kind),
        recovery_attempted=recovery_attempted,
        parsed_response=parsed,
    )


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _check_confidence(value: Any, path: str) -> List[str]:
    if not _is_number(value):
        return [f'"{path}" must be a number']
    if not 0 <= value <= 1:
        return [f'"{path}" must be between 0 and 1']
    return []


def _check_string_array(container: Mapping[str, Any], key: str, path: str) -> List[str]:
    value = container[key]
    if not isinstance(value, list):
        return [f'"{path}" must be an array']
    return [f'"{path}[{i}]" must be a string' for i, item in enumerate(value) if not isinstance(item, str)]


def _check_structure(response: Any, kind: ResponseKind) -> Tuple[List[str], List[str]]:
    if not isinstance(response, Mapping):
        return ["Response must be a JSON object"], []
    if kind is ResponseKind.REVIEW:
        return _check_review(response)
    return _check_enhancement(response)


def _check_review(response: Mapping[str, Any]) -> Tuple[List[str], List[str]]:
    errors: List[str] = []
    warnings: List[str] = []

    if "reviewResult" not in response:
        return ['Review response missing "reviewResult" field'], warnings
    review = response["reviewResult"]
    if not isinstance(review, Mapping):
        return ['"reviewResult" must be an object'], warnings

    for key in REVIEW_STRING_ARRAYS:
        path = f"reviewResult.{key}"
        if key in review:
            errors.extend(_check_string_array(review, key, path))
        elif key in REQUIRED_REVIEW_ARRAYS:
            errors.append(f'"{path}" is required')
        else:
            warnings.append(f'"{path}" is missing (optional but recommended)')

    if "prioritizedActions" not in review:
        warnings.append('"reviewResult.prioritizedActions" is missing (optional but recommended)')
    elif not isinstance(review["prioritizedActions"], list):
        errors.append('"reviewResult.prioritizedActions" must be an array')
    else:
        for i, action in enumerate(review["prioritizedActions"]):
            path = f"reviewResult.prioritizedActions[{i}]"
            if not isinstance(action, Mapping):
                errors.append(f'"{path}" must be an object')
                continue
            for key in ACTION_STRING_FIELDS:
                if not isinstance(action.get(key), str):
                    errors.append(f'"{path}.{key}" is required and must be a string')

    if "confidence" not in review:
        warnings.append('"reviewResult.confidence" is missing (optional but recommended)')
    else:
        errors.extend(_check_confidence(review["confidence"], "reviewResult.confidence"))

    return errors, warnings


def _check_enhancement(response: Mapping[str, Any]) -> Tuple[List[str], List[str]]:
    errors: List[str] = []

    if "enhancedResume" not in response:
        errors.append('AI response missing "enhancedResume" field')
    elif not isinstance(response["enhancedResume"], Mapping):
        errors.append('"enhancedResume" must be an object')

    if "improvements" not in response:
        errors.append('AI response missing "improvements" field')
    elif not isinstance(response["improvements"], list):
        errors.append('"improvements" must be an array')

    if "reasoning" in response and not isinstance(response["reasoning"], str):
        errors.append('"reasoning" must be a string')
    if "confidence" in response:
        errors.extend(_check_confidence(response["confidence"], "confidence"))
    for key in ("tokensUsed", "cost"):
        if key in response and not _is_number(response[key]):
            errors.append(f'"{key}" must be a number')

    return errors, []


def _recover_structure(response: Any, kind: ResponseKind) -> Tuple[Optional[Dict[str, Any]], List[str]]:
    """Return a repaired deep copy of *response*, or ``None`` with the reasons."""
    if not isinstance(response, Mapping):
        return None, ["Cannot recover: response is not a JSON object"]

    repaired = copy.deepcopy(dict(response))

    if kind is ResponseKind.REVIEW:
        review = repaired.get("reviewResult")
        review = dict(review) if isinstance(review, Mapping) else {}
        for key in REVIEW_STRING_ARRAYS:
            value = review.get(key)
            review[key] = [item for item in value if isinstance(item, str)] if isinstance(value, list) else []
        actions = review.get("prioritizedActions")
        review["prioritizedActions"] = [
            action
            for action in (actions if isinstance(actions, list) else [])
            if isinstance(action, Mapping) and all(isinstance(action.get(k), str) for k in ACTION_STRING_FIELDS)
        ]
        if _check_confidence(review.get("confidence"), "confidence"):
            review["confidence"] = DEFAULT_CONFIDENCE
        repaired["reviewResult"] = review
        return repaired, []

    if not isinstance(repaired.get("enhancedResume"), Mapping):
        return None, ["Cannot recover: enhancedResume is missing"]

    if not isinstance(repaired.get("improvements"), list):
        repaired["improvements"] = []
    if "confidence" in repaired and _check_confidence(repaired["confidence"], "confidence"):
        repaired["confidence"] = DEFAULT_CONFIDENCE
    if "reasoning" in repaired and not isinstance(repaired["reasoning"], str):
        del repaired["reasoning"]
    for key in ("tokensUsed", "cost"):
        if key in repaired and not _is_number(repaired[key]):
            del repaired[key]
    return repaired, []


def _check_nested(
    response: Mapping[str, Any],
    opts: ValidationOptions,
    check_resume: ResumeValidatorFn,
) -> Tuple[List[str], List[str]]:
    errors: List[str] = []
    warnings: List[str] = []

    resume = response.get("enhancedResume")
    if opts.validate_resume and isinstance(resume, Mapping):
        resume_errors, resume_warnings = _check_resume(resume, opts.strict_resume_validation, check_resume)
        errors.extend(resume_errors)
        warnings.extend(resume_warnings)

    improvements = response.get("improvements")
    if opts.validate_improvements and isinstance(improvements, list):
        errors.extend(_check_improvements(improvements))

    return errors, warnings


def _check_resume(resume: Any, strict: bool, check_resume: ResumeValidatorFn) -> Tuple[List[str], List[str]]:
    if not isinstance(resume, Mapping):
        return ["Resume must be an object"], []

    try:
        findings = [str(item) for item in check_resume(resume)]
    except Exception as e:
        return [f"Resume validation failed: {e}"], []

    if strict:
        return findings, []
    return [], findings


def _check_improvements(improvements: Any) -> List[str]:
    if not isinstance(improvements, list):
        return ["Improvements must be an array"]

    errors: List[str] = []
    for i, item in enumerate(improvements):
        path = f"improvements[{i}]"
        if not isinstance(item, Mapping):
            errors.append(f"{path} must be an object")
            continue

        kind = item.get("type")
        if not isinstance(kind, str):
            errors.append(f"{path}.type is required and must be a string")
        elif kind not in VALID_IMPROVEMENT_TYPES:
            errors.append(f"{path}.type must be one of: {', '.join(VALID_IMPROVEMENT_TYPES)}")

        for key in IMPROVEMENT_STRING_FIELDS:
            if not isinstance(item.get(key), str):
                errors.append(f"{path}.{key} is required and must be a string")

        confidence = item.get("confidence")
        if not _is_number(confidence):
            errors.append(f"{path}.confidence is required and must be a number")
        elif not 0 <= confidence <= 1:
            errors.append(f"{path}.confidence must be between 0 and 1")

    return errors


def _suggestions(errors: List[str], kind: ResponseKind) -> List[str]:
    """Remediation hints keyed on which error categories fired."""

    def fired(*needles: str) -> bool:
        return any(needle in error for error in errors for needle in needles)

    suggestions: List[str] = []

    if fired("must be a JSON object", "Failed to parse JSON"):
        suggestions.append("Ensure the response is a single valid JSON object, not prose or another type")

    if kind is ResponseKind.REVIEW:
        if fired("reviewResult"):
            suggestions.append(
                'Review response must include a "reviewResult" object with strengths, weaknesses, '
                "opportunities and prioritizedActions"
            )
        if fired("strengths"):
            suggestions.append('Review result must include a "strengths" array of strings')
        if fired("weaknesses"):
            suggestions.append('Review result must include a "weaknesses" array of strings')
        if fired("prioritizedActions"):
            suggestions.append("Each prioritized action needs string type, priority and reason fields")
    else:
        if fired("enhancedResume"):
            suggestions.append('AI response must include an "enhancedResume" object')
        if fired("improvements"):
            suggestions.append(
                'AI response must include an "improvements" array; each entry needs type '
                f"({'/'.join(VALID_IMPROVEMENT_TYPES)}), section, original, suggested, reason and confidence"
            )

    if fired("personalInfo", "experience", "Resume"):
        suggestions.append("Ensure the enhanced resume keeps all required fields: personalInfo, experience, etc.")

    if fired("must be a", "must be an"):
        suggestions.append("Check that all field types match the expected schema (strings, arrays, objects, numbers)")

    if fired("confidence"):
        suggestions.append("Confidence score must be a number between 0 and 1")

    return suggestions
