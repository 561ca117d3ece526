"""Heuristic relevance scorer.

Additive 0-100 score from text overlap with the candidate profile:

==================  ======
role match          0-40
skill coverage      0-35
location            0-15
permanent contract  +5
quality source      +10
==================  ======

A record with no role signal, no skill hit and no quality-source origin
is scored 0, which means "excluded", not "worst match".
"""

from __future__ import annotations

import logging

from .models import CandidateProfile, JobRecord
from .normalize import is_quality_source, normalize_contract_type
from .search_agent import count_by_source

logger = logging.getLogger(__name__)

ROLE_IN_TITLE = 40
ROLE_IN_TEXT = 30
ROLE_WORD_IN_TITLE = 25
ROLE_WORD_IN_TEXT = 15
SKILL_WEIGHT = 35
MAX_SKILLS_COUNTED = 10
LOCATION_EXACT = 15
LOCATION_REGION = 10
PERMANENT_BONUS = 5
QUALITY_BONUS = 10
QUALITY_FLOOR = 10

# City -> names of the containing region a posting may use instead.
REGION_ALIASES: dict[str, tuple[str, ...]] = {
    "paris": ("île-de-france", "ile-de-france", "ile de france", "idf"),
}


def role_score(roles: list[str], title: str, text: str) -> int:
    """Best role-match tier across all roles. Inputs must be lower-cased."""
    best = 0
    for role in roles:
        if role in title:
            return ROLE_IN_TITLE
        if role in text:
            best = max(best, ROLE_IN_TEXT)
            continue
        words = [word for word in role.split() if len(word) > 3]
        if any(word in title for word in words):
            best = max(best, ROLE_WORD_IN_TITLE)
        elif any(word in text for word in words):
            best = max(best, ROLE_WORD_IN_TEXT)
    return best


def skill_matches(skills: list[str], text: str) -> tuple[int, int]:
    """Return ``(matches, counted skills)`` for skills longer than two characters."""
    counted = [skill for skill in skills if len(skill) > 2]
    return sum(1 for skill in counted if skill in text), len(counted)


def location_score(requested: str, job_location: str) -> int:
    requested = requested.strip().lower()
    job_location = job_location.lower()
    if not requested:
        return 0
    if requested in job_location:
        return LOCATION_EXACT
    for city, regions in REGION_ALIASES.items():
        if city in requested and any(region in job_location for region in regions):
            return LOCATION_REGION
    return 0


def score_job(job: JobRecord, profile: CandidateProfile) -> int:
    """Compute the heuristic score of one record (0 = excluded)."""
    title = job.title.lower()
    text = f"{title} {job.description.lower()}"
    roles = [role.lower() for role in profile.target_roles]
    skills = [skill.lower() for skill in profile.skills]
    quality = is_quality_source(job.source)

    role_points = role_score(roles, title, text)
    matches, counted = skill_matches(skills, text)
    if role_points == 0 and matches == 0 and not quality:
        return 0

    score = float(role_points)
    if counted:
        score += min(matches / min(counted, MAX_SKILLS_COUNTED), 1) * SKILL_WEIGHT
    score += location_score(profile.location, job.location)
    if normalize_contract_type(job.matching_details.contract_type) == "permanent":
        score += PERMANENT_BONUS
    if quality:
        score += QUALITY_BONUS

    score = max(0, min(100, round(score)))
    if quality:
        score = max(score, QUALITY_FLOOR)
    return score


def score_jobs(jobs: list[JobRecord], profile: CandidateProfile) -> list[JobRecord]:
    """Set ``heuristic_score`` on every record and return those scoring above zero."""
    logger.info("Records by source before scoring: %s", count_by_source(jobs))
    for job in jobs:
        job.heuristic_score = score_job(job, profile)
    scored = [job for job in jobs if job.heuristic_score]
    logger.info("Records by source after scoring (score > 0): %s", count_by_source(scored))
    return scored
