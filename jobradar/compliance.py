"""Compliance filter: agency exclusion, contract type and work mode.

Contract type and work mode are tri-state (matching, non-matching,
unknown). The two facets treat "unknown" differently:

* contract type keeps unknown records, unless freelance was requested;
* work mode always keeps unknown records.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from .models import CandidateProfile, JobRecord
from .normalize import contract_display_label, normalize_contract_type, normalize_remote_mode

logger = logging.getLogger(__name__)

DEFAULT_AGENCY_DENYLIST: tuple[str, ...] = (
    "michael page",
    "page personnel",
    "pagegroup",
    "robert half",
    "hays",
    "randstad",
    "adecco",
    "manpower",
    "kelly services",
    "experis",
    "akkodis",
    "modis",
    "spring",
    "lhh",
    "expectra",
    "synergie",
    "crit",
    "proman",
    "actual",
    "partnaire",
    "temporis",
    "interaction",
    "start people",
    "menway",
    "lynx rh",
    "free-work",
    "free work",
    "externatic",
    "urban linker",
    "talent.io",
    "hired",
    "triplebyte",
    "lincoln",
    "jp associates",
    "freelance.com",
    "malt",
    "side",
    "coopaname",
    "keljob",
    "jobteaser",
    "le collectif",
    "skillwise",
    "happy to meet you",
    "htmy",
    "ignition program",
    "mobiskill",
    "silkhom",
    "altaide",
    "mybeautifuljob",
    "hunteed",
    "opensourcing",
    "nexten",
    "kicklox",
    "welovedevs",
    "chooseyourboss",
    "lesjeudis",
    "club freelance",
    "comet",
    "xor talents",
    "mindquest",
    "wenabi",
    "approach people",
    "blue coding",
    "wesley",
    "sthree",
    "computer futures",
    "progressive recruitment",
    "real staffing",
    "nigel frank",
    "jefferson wells",
    "aston carter",
)


# Brands that are also common words or word fragments ("inside", "critical",
# "server-side"). These match as standalone words only.
WHOLE_WORD_BRANDS = frozenset(
    {
        "side",
        "crit",
        "spring",
        "actual",
        "malt",
        "comet",
        "hired",
        "modis",
        "lhh",
        "htmy",
        "hays",
        "lincoln",
        "wesley",
        "proman",
        "nexten",
        "synergie",
        "interaction",
        "le collectif",
        "free work",
    }
)


def compile_denylist(names: Iterable[str], whole_words: frozenset[str] = WHOLE_WORD_BRANDS) -> re.Pattern[str] | None:
    """Build one case-insensitive pattern that finds any name inside a text.

    Names listed in *whole_words* must not touch a letter, digit or hyphen
    on either side. Every other name matches as a plain substring, so
    compound brands such as "ManpowerGroup" are caught.
    """
    alternatives = sorted({name.strip().lower() for name in names if name.strip()}, key=len, reverse=True)
    if not alternatives:
        return None
    parts = [
        rf"(?<![\w-]){re.escape(name)}(?![\w-])" if name in whole_words else re.escape(name)
        for name in alternatives
    ]
    return re.compile("|".join(parts), re.IGNORECASE)


_DEFAULT_PATTERN = compile_denylist(DEFAULT_AGENCY_DENYLIST)


def is_agency_posting(job: JobRecord, pattern: re.Pattern[str] | None = _DEFAULT_PATTERN) -> bool:
    """True when the company name or description names a denylisted agency."""
    if pattern is None:
        return False
    return bool(pattern.search(job.company_name or "") or pattern.search(job.description or ""))


def contract_matches(raw: str | None, requested: list[str]) -> bool:
    """Contract-type check with the freelance special cases.

    A freelance request also accepts fixed-term postings, and is the only
    request that rejects postings whose contract type is unknown.
    """
    if not requested:
        return True
    normalized = normalize_contract_type(raw)
    if normalized is None:
        return "freelance" not in requested
    if normalized in requested:
        return True
    return normalized == "fixed-term" and "freelance" in requested


def remote_matches(raw: str | None, requested: list[str]) -> bool:
    """Work-mode check; unknown work mode always passes."""
    if not requested:
        return True
    normalized = normalize_remote_mode(raw)
    return normalized is None or normalized in requested


def filter_jobs(
    jobs: list[JobRecord],
    profile: CandidateProfile,
    agency_denylist: Iterable[str] = DEFAULT_AGENCY_DENYLIST,
) -> list[JobRecord]:
    """Drop records that violate the profile's exclusion and facet preferences.

    Survivors get their user-facing ``contract_label`` set. No record is
    removed for relevance here; quality sources pass through the same
    checks as everything else.

    Args:
        jobs: Raw merged records.
        profile: Candidate profile carrying the preferences.
        agency_denylist: Agency names to exclude when ``profile.exclude_agencies`` is set.
    """
    if agency_denylist is DEFAULT_AGENCY_DENYLIST:
        pattern = _DEFAULT_PATTERN
    else:
        pattern = compile_denylist(agency_denylist)

    dropped = {"agency": 0, "contract": 0, "remote": 0}
    kept: list[JobRecord] = []
    for job in jobs:
        details = job.matching_details
        if profile.exclude_agencies and is_agency_posting(job, pattern):
            dropped["agency"] += 1
            continue
        if not contract_matches(details.contract_type, profile.contract_types):
            dropped["contract"] += 1
            continue
        if not remote_matches(details.remote_type, profile.remote_modes):
            dropped["remote"] += 1
            continue
        job.contract_label = contract_display_label(details.contract_type, profile.contract_types)
        kept.append(job)

    logger.info(
        "Compliance filter kept %d/%d (dropped: %d agency, %d contract, %d remote)",
        len(kept),
        len(jobs),
        dropped["agency"],
        dropped["contract"],
        dropped["remote"],
    )
    return kept
