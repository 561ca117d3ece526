"""Shared vocabularies for mapping provider-native fields into the common schema.

Contract type and work mode are tri-state: a recognised value, an
unrecognised value, or absent. Both normalisers return ``None`` for the last
two so callers can tell "unknown" apart from a real, non-matching value.
"""

from __future__ import annotations

import re
from typing import Any

# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------

DIRECT_LISTING_LABEL = "Direct listing"

# Providers that re-expose other boards. Their identity is never shown to users.
AGGREGATOR_IDENTITIES = frozenset({"adzuna", "serpapi", "google jobs", "google", "apify"})

# Direct-employer applicant tracking systems, as reported by the ATS actor.
QUALITY_SOURCES = frozenset(
    {
        "greenhouse",
        "lever_co",
        "ashby",
        "workable",
        "rippling",
        "polymer",
        "workday",
        "smartrecruiters",
        "bamboohr",
        "breezy",
        "jazzhr",
        "recruitee",
        "personio",
    }
)

# (URL fragment, board label), checked in order.
_ORIGINAL_SOURCE_PATTERNS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("pole-emploi", "francetravail"), "France Travail"),
    (("apec.fr",), "APEC"),
    (("cadremploi",), "Cadremploi"),
    (("monster",), "Monster"),
    (("meteojob",), "Meteojob"),
    (("regionsjob",), "RegionsJob"),
    (("hellowork",), "HelloWork"),
    (("indeed",), "Indeed"),
    (("linkedin",), "LinkedIn"),
    (("welcometothejungle", "wttj"), "WTTJ"),
    (("talent.com",), "Talent.com"),
    (("jobijoba",), "Jobijoba"),
    (("lesjeudis",), "LesJeudis"),
    (("chooseyourboss",), "ChooseYourBoss"),
    (("free-work", "freework"), "Free-Work"),
)


def detect_original_source(url: str | None) -> str:
    """Recover the job board behind an aggregator's outbound URL.

    Falls back to :data:`DIRECT_LISTING_LABEL` when the URL does not point
    at a recognised board.
    """
    lowered = (url or "").lower()
    for fragments, label in _ORIGINAL_SOURCE_PATTERNS:
        if any(fragment in lowered for fragment in fragments):
            return label
    return DIRECT_LISTING_LABEL


def is_quality_source(source: str) -> bool:
    return source.strip().lower() in QUALITY_SOURCES


# ---------------------------------------------------------------------------
# Contract type
# ---------------------------------------------------------------------------

_CONTRACT_ALIASES: dict[str, str] = {
    "permanent": "permanent",
    "cdi": "permanent",
    "regular": "permanent",
    "festanstellung": "permanent",
    "fixed-term": "fixed-term",
    "fixed term": "fixed-term",
    "cdd": "fixed-term",
    "contract": "fixed-term",
    "contractor": "fixed-term",
    "temporary": "fixed-term",
    "temp": "fixed-term",
    "interim": "fixed-term",
    "intérim": "fixed-term",
    "internship": "internship",
    "intern": "internship",
    "stage": "internship",
    "apprenticeship": "internship",
    "alternance": "internship",
    "freelance": "freelance",
    "freelancer": "freelance",
    "self-employed": "freelance",
    "independent": "freelance",
    "indépendant": "freelance",
}

CONTRACT_LABELS: dict[str, str] = {
    "permanent": "Permanent",
    "fixed-term": "Fixed-term",
    "internship": "Internship",
    "freelance": "Freelance",
}


def _vocab_key(value: str) -> str:
    return re.sub(r"[\s_]+", " ", value.strip().lower()).replace(" - ", "-")


def normalize_contract_type(raw: Any) -> str | None:
    """Map a provider's contract vocabulary to permanent/fixed-term/internship/freelance.

    Returns ``None`` when the value is absent or not recognised.
    """
    if not isinstance(raw, str) or not raw.strip():
        return None
    key = _vocab_key(raw)
    return _CONTRACT_ALIASES.get(key) or _CONTRACT_ALIASES.get(key.replace(" ", "-"))


def contract_display_label(raw: Any, requested: list[str] | tuple[str, ...] = ()) -> str | None:
    """User-facing contract label.

    A fixed-term posting kept by a freelance request is shown as freelance,
    since sources file freelance work under fixed-term contracts.
    """
    normalized = normalize_contract_type(raw)
    if normalized is None:
        return None
    if normalized == "fixed-term" and "freelance" in requested:
        return CONTRACT_LABELS["freelance"]
    return CONTRACT_LABELS[normalized]


# ---------------------------------------------------------------------------
# Remote mode
# ---------------------------------------------------------------------------

_REMOTE_ALIASES: dict[str, str] = {
    "on-site": "on-site",
    "on site": "on-site",
    "onsite": "on-site",
    "office": "on-site",
    "in office": "on-site",
    "in-office": "on-site",
    "présentiel": "on-site",
    "hybrid": "hybrid",
    "hybride": "hybrid",
    "hybrid work": "hybrid",
    "télétravail partiel": "hybrid",
    "full-remote": "full-remote",
    "full remote": "full-remote",
    "fully remote": "full-remote",
    "remote": "full-remote",
    "work from home": "full-remote",
    "télétravail": "full-remote",
    "télétravail total": "full-remote",
    "teletravail": "full-remote",
}


def normalize_remote_mode(raw: Any) -> str | None:
    """Map a provider's work-mode vocabulary to on-site/hybrid/full-remote, or ``None``."""
    if not isinstance(raw, str) or not raw.strip():
        return None
    key = _vocab_key(raw)
    return _REMOTE_ALIASES.get(key) or _REMOTE_ALIASES.get(key.replace("-", " "))
