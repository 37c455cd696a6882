"""Canned system prompts, one per task category."""

from __future__ import annotations

from typing import Dict

TASK_PROMPTS: Dict[str, str] = {
    "summarize": (
        "Please provide a concise summary of the following document. "
        "Focus on key points and main ideas."
    ),
    "extract": (
        "Extract the most important information from the following document. "
        "Organize it in a structured format."
    ),
    "categorize": (
        "Categorize and classify the content of the following document. "
        "Identify the main topic, subtopics, and relevant keywords."
    ),
    "analyze": (
        "Perform a detailed analysis of the following document. "
        "Include insights, patterns, and recommendations."
    ),
}

TASK_DESCRIPTIONS: Dict[str, str] = {
    "summarize": "Condense document to key points",
    "extract": "Pull out important information in structured format",
    "categorize": "Classify content and identify topics",
    "analyze": "Detailed analysis with insights and recommendations",
}
