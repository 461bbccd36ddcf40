"""Prompt builders for the review and modify phases."""

from .modify_prompt import build_modify_prompt
from .review_prompt import build_review_prompt

__all__ = ["build_review_prompt", "build_modify_prompt"]
