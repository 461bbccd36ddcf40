"""Prompt for the review phase."""

from __future__ import annotations

import json

from ..providers.types import ReviewRequest

REVIEW_SYSTEM_PROMPT = """You are an expert resume reviewer and career advisor with deep knowledge of ATS (Applicant Tracking System) requirements and hiring best practices. Analyze resumes objectively and give actionable feedback that improves a candidate's chances for one specific job posting."""

REVIEW_TASK = """Analyze the resume below against the job description. Identify strengths, weaknesses and opportunities, then list the concrete actions that would most improve the resume's alignment with the posting, highest priority first."""

REVIEW_FOCUS_AREAS = [
    "How well the resume matches the job requirements",
    "Missing keywords or skills from the job description",
    "Bullet points that are vague or lack measurable impact",
    "Experience that is relevant but under-emphasized",
    "ATS compatibility of wording and section structure",
]

REVIEW_OUTPUT_FORMAT = """Respond with a single JSON object and nothing else:
{
  "strengths": ["..."],
  "weaknesses": ["..."],
  "opportunities": ["..."],
  "prioritizedActions": [
    {
      "type": "enhance" | "reorder" | "add" | "remove" | "rewrite",
      "section": "experience" | "skills" | "summary" | "...",
      "priority": "high" | "medium" | "low",
      "reason": "why this action is needed",
      "suggestedChange": "optional concrete suggestion"
    }
  ],
  "confidence": 0.0-1.0,
  "reasoning": "one-paragraph summary of the analysis"
}"""


def build_review_prompt(request: ReviewRequest) -> str:
    """Build the review prompt for *request*."""
    focus = "\n".join(f"{i}. {area}" for i, area in enumerate(REVIEW_FOCUS_AREAS, 1))
    return (
        f"{REVIEW_SYSTEM_PROMPT}\n\n"
        f"{REVIEW_TASK}\n\n"
        "## RESUME\n"
        f"{json.dumps(request.resume, indent=2, ensure_ascii=False)}\n\n"
        "## JOB DESCRIPTION\n"
        f"{request.job_description.strip()}\n\n"
        "## ANALYSIS FOCUS\n"
        f"{focus}\n\n"
        "## OUTPUT FORMAT\n"
        f"{REVIEW_OUTPUT_FORMAT}\n"
    )
