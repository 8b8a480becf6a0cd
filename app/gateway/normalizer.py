"""Response Normalizer: turns free-form completion text into a skill list.

The model is asked for a JSON array, but replies often wrap the array in
prose or markdown fences, or ignore the format entirely:
  - First JSON array substring found → parsed as the skill list
  - No array at all → comma-separated text
  - Unparseable or empty → fallback skills for the title
"""

from __future__ import annotations

import json
import logging
import re

from app.data.skills import fallback_skills

logger = logging.getLogger(__name__)

# Greedy across newlines: from the first "[" to the last "]"
_JSON_ARRAY_PATTERN = re.compile(r"\[.*\]", re.DOTALL)


def parse_skills(text: str | None, title: str) -> list[str]:
    """Extract skills from completion text, falling back when nothing is usable."""
    if not text:
        logger.warning("Empty completion text for %r, using fallback skills", title)
        return fallback_skills(title)

    try:
        skills = _extract_skills(text)
    except (ValueError, TypeError) as e:
        logger.warning("Could not parse completion for %r (%s), using fallback skills", title, e)
        return fallback_skills(title)

    if not skills:
        logger.warning("Completion for %r yielded no skills, using fallback skills", title)
        return fallback_skills(title)

    return skills


def _extract_skills(text: str) -> list[str]:
    match = _JSON_ARRAY_PATTERN.search(text)
    if match is None:
        return _split_csv(text)

    parsed = json.loads(match.group(0))
    if not isinstance(parsed, list):
        raise TypeError(f"expected a JSON array, got {type(parsed).__name__}")
    return _clean([item for item in parsed if isinstance(item, str)])


def _split_csv(text: str) -> list[str]:
    return _clean(text.split(","))


def _clean(items: list[str]) -> list[str]:
    """Trim and drop empty entries, preserving order."""
    result: list[str] = []
    for item in items:
        cleaned = item.strip()
        if cleaned:
            result.append(cleaned)
    return result
