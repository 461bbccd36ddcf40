"""Pure domain logic for resume data validation.

All functions operate on already-loaded resume dicts -- no file I/O.
"""

from __future__ import annotations

from typing import Any, List, Mapping

PERSONAL_INFO_FIELDS = ("name", "email", "phone", "location")
EXPERIENCE_FIELDS = ("company", "role", "startDate", "endDate", "location")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate_resume_data(resume: Any) -> List[str]:
    """Validate a resume dict and return a list of error strings.

    An empty list means the resume carries every required field. This is the
    default collaborator the response validator uses for enhanced resumes.
    """
    if not isinstance(resume, Mapping):
        return ["Resume must be an object"]

    errors: List[str] = []
    errors.extend(_check_personal_info(resume.get("personalInfo")))
    errors.extend(_check_experience(resume.get("experience")))
    return errors


# ---------------------------------------------------------------------------
# Private checks
# ---------------------------------------------------------------------------


def _check_personal_info(info: Any) -> List[str]:
    if not info:
        return ["personalInfo is required"]
    if not isinstance(info, Mapping):
        return ["personalInfo must be an object"]

    return [f"personalInfo.{key} is required" for key in PERSONAL_INFO_FIELDS if not info.get(key)]


def _check_experience(experience: Any) -> List[str]:
    if not isinstance(experience, list):
        return ["experience is required and must be an array"]
    if not experience:
        return ["experience array must contain at least one entry"]

    errors: List[str] = []
    for index, entry in enumerate(experience):
        if not isinstance(entry, Mapping):
            errors.append(f"experience[{index}] must be an object")
            continue
        for key in EXPERIENCE_FIELDS:
            if not entry.get(key):
                errors.append(f"experience[{index}].{key} is required")
        if not isinstance(entry.get("bulletPoints"), list):
            errors.append(f"experience[{index}].bulletPoints is required and must be an array")
    return errors
