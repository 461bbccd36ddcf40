"""Prompt for the modify phase."""

from __future__ import annotations

import json
from typing import Dict, List

from ..providers.types import EnhancementRequest

MODIFY_SYSTEM_PROMPT = """You are an expert resume writer specializing in ATS-optimized resumes. You improve how a candidate's real experience reads for a specific job without inventing anything."""

MODIFY_TASK = """Enhance the resume below using the review findings and the job description. Only include sections that exist in the original resume. You may add items within existing sections, such as skills that are reasonably implied by the experience listed."""

TRUTHFULNESS_RULES = [
    "NEVER add experiences, companies, roles, or dates not present in the original resume",
    "NEVER add sections that do not exist in the original resume",
    "NEVER fabricate achievements or metrics that cannot be reasonably inferred",
    "Do not change dates, company names, or other factual information",
    "Use natural language and avoid mechanical keyword stuffing",
]

ENHANCEMENT_FOCUS: Dict[str, List[str]] = {
    "full": [
        "Rewrite bullet points to naturally incorporate job-relevant keywords",
        "Reorder skills to put job-relevant ones first (only if a skills section exists)",
        "Align the summary with the job (only if a summary exists)",
        "Use strong action verbs and impact language",
    ],
    "bulletPoints": [
        "Focus ONLY on rewriting experience bullet points",
        "Use strong action verbs and quantifiable impact where the original supports it",
        "Do not modify other sections",
    ],
    "skills": [
        "Focus ONLY on reordering and enhancing the skills section",
        "Prioritize skills mentioned in the job description",
        "Do not modify other sections",
    ],
    "summary": [
        "Focus ONLY on the summary section, and only if it exists in the original resume",
        "Do not modify other sections",
    ],
}

MODIFY_OUTPUT_FORMAT = """Respond with a single JSON object and nothing else:
{
  "enhancedResume": { ...the full resume, same structure and sections as the original... },
  "improvements": [
    {
      "type": "bulletPoint" | "summary" | "skill" | "keyword",
      "section": "e.g. experience[0]",
      "original": "text before",
      "suggested": "text after",
      "reason": "why the change helps",
      "confidence": 0.0-1.0
    }
  ],
  "reasoning": "short explanation of the overall strategy",
  "confidence": 0.0-1.0
}"""


def build_modify_prompt(request: EnhancementRequest) -> str:
    """Build the modify prompt for *request*; requires a review result."""
    if request.review_result is None:
        raise ValueError("Review result is required for the modify prompt")

    mode = str(request.options.get("enhancementMode") or "full")
    focus_areas = ENHANCEMENT_FOCUS.get(mode, ENHANCEMENT_FOCUS["full"])
    rules = "\n".join(f"{i}. {rule}" for i, rule in enumerate(TRUTHFULNESS_RULES, 1))
    focus = "\n".join(f"{i}. {area}" for i, area in enumerate(focus_areas, 1))

    return (
        f"{MODIFY_SYSTEM_PROMPT}\n\n"
        f"{MODIFY_TASK}\n\n"
        "## ORIGINAL RESUME\n"
        f"{json.dumps(request.resume, indent=2, ensure_ascii=False)}\n\n"
        "## JOB DESCRIPTION\n"
        f"{request.job_description.strip()}\n\n"
        "## REVIEW FINDINGS\n"
        f"{json.dumps(request.review_result.to_dict(), indent=2, ensure_ascii=False)}\n\n"
        "## CRITICAL RULES (MUST FOLLOW)\n"
        f"{rules}\n\n"
        "## ENHANCEMENT FOCUS\n"
        f"{focus}\n\n"
        "## OUTPUT FORMAT\n"
        f"{MODIFY_OUTPUT_FORMAT}\n"
    )
