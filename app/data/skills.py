"""Static fallback skill taxonomy.

Used whenever the completion API cannot produce a usable skill list:
validation failures, upstream errors, exhausted retries and unparseable
responses all resolve to ``fallback_skills(title)``.

Categories are matched by lower-cased substring, first match wins, in the
order of ``SKILL_CATEGORIES``.
"""

from __future__ import annotations

COMMON_SKILLS: list[str] = [
    "Communication",
    "Problem Solving",
    "Teamwork",
    "Time Management",
]

_NURSING_SKILLS: list[str] = [
    "Patient Care",
    "Medical Record Documentation",
    "Vital Signs Monitoring",
    "Medication Administration",
    "Wound Care",
    "Patient Advocacy",
    "CPR/BLS Certified",
    "Care Planning",
    "Clinical Assessment",
    "EMR/EHR Systems",
    *COMMON_SKILLS[:2],
]

# (keywords, skills) in match order
SKILL_CATEGORIES: list[tuple[tuple[str, ...], list[str]]] = [
    (("nurse", "nursing"), _NURSING_SKILLS),
    (("developer", "engineer"), [*COMMON_SKILLS, "JavaScript", "React", "Git", "CSS", "HTML"]),
    (("designer",), [*COMMON_SKILLS, "UI/UX", "Figma", "Adobe Creative Suite", "Prototyping"]),
    (("manager",), [*COMMON_SKILLS, "Leadership", "Project Management", "Agile", "Budgeting"]),
]

GENERIC_SKILLS: list[str] = [*COMMON_SKILLS, "Research", "Microsoft Office", "Organization", "Analysis"]


def fallback_skills(title: str | None = "") -> list[str]:
    """Return the deterministic fallback skill list for a job title."""
    lower_title = (title or "").lower()
    for keywords, skills in SKILL_CATEGORIES:
        if any(keyword in lower_title for keyword in keywords):
            return list(skills)
    return list(GENERIC_SKILLS)


def common_skills() -> list[str]:
    """The four generic skills returned with validation errors."""
    return list(COMMON_SKILLS)
