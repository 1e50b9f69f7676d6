# SMB Metrics - Business dashboard metrics engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Profile scoring for SMB Metrics.

This module turns a business profile record into the scores displayed on
the business overview:

- completeness         : how much of the profile has been filled in,
- business_health      : business age, team size and revenue level,
- investment_readiness : weighted blend of the two above plus a capped
                         bonus for the length of the business description,
- growth_potential     : "high" / "medium" / "low" derived from readiness.

All scores are integers in [0, 100]. The functions are pure: the profile
record is only read, and the reference date used for the business age can
be injected.

Profile record
--------------
A plain mapping keyed by field name. No field is guaranteed to be present:

    business_name, business_type, location, region, business_description,
    year_established, employee_count, monthly_revenue, funding_needed,
    is_email_verified, is_phone_verified, is_business_verified

camelCase aliases (``businessName``, ``isEmailVerified``, ...) are accepted
and normalized by :func:`normalize_profile`.

Scoring tables
--------------
Employee-count and monthly-revenue buckets are scored through explicit
ordered lookup tables keyed by bucket identifier. Unknown or absent
buckets score 0.
"""

import math
import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional

REQUIRED_FIELDS = (
    "business_name",
    "business_type",
    "location",
    "region",
    "business_description",
)
ENHANCEMENT_FIELDS = (
    "year_established",
    "employee_count",
    "monthly_revenue",
    "funding_needed",
)
VERIFICATION_POINTS = (
    ("is_email_verified", 3),
    ("is_phone_verified", 4),
    ("is_business_verified", 3),
)

REQUIRED_WEIGHT = 60.0
ENHANCEMENT_WEIGHT = 30.0

AGE_POINTS_PER_YEAR = 5
AGE_POINTS_MAX = 25

EMPLOYEE_COUNT_POINTS: tuple[tuple[str, int], ...] = (
    ("1-5", 10),
    ("6-20", 20),
    ("21-50", 25),
    ("51-100", 30),
    ("100+", 30),
)

MONTHLY_REVENUE_POINTS: tuple[tuple[str, int], ...] = (
    ("0-5000", 10),
    ("5000-20000", 20),
    ("20000-50000", 30),
    ("50000-100000", 40),
    ("100000+", 45),
)

HIGH_GROWTH_THRESHOLD = 75
MEDIUM_GROWTH_THRESHOLD = 50

_CAMEL_ALIASES = {
    "businessName": "business_name",
    "businessType": "business_type",
    "businessDescription": "business_description",
    "yearEstablished": "year_established",
    "employeeCount": "employee_count",
    "monthlyRevenue": "monthly_revenue",
    "fundingNeeded": "funding_needed",
    "isEmailVerified": "is_email_verified",
    "isPhoneVerified": "is_phone_verified",
    "isBusinessVerified": "is_business_verified",
}


@dataclass(frozen=True)
class ProfileScores:
    """Scores derived from a business profile record."""

    completeness: int
    business_health: int
    investment_readiness: int
    growth_potential: str

    def to_dict(self) -> dict[str, Any]:
        """Return the persisted (camelCase) representation."""
        return {
            "profileCompleteness": self.completeness,
            "businessHealth": self.business_health,
            "investmentReadiness": self.investment_readiness,
            "growthPotential": self.growth_potential,
        }


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves rounding up (not to even)."""
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float, high: float) -> float:
    """Clamp `value` to the [low, high] interval."""
    return max(low, min(high, value))


def _is_present(value: Any) -> bool:
    """A field counts as present when it is truthy once stripped."""
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return bool(value)


def verification_flag(value: Any) -> bool:
    """Interpret a verification flag (bool, number or 'true'/'yes'/'1')."""
    if isinstance(value, str):
        return value.strip().lower() in {"true", "yes", "1"}
    return bool(value)


def normalize_profile(profile: Optional[Mapping[str, Any]]) -> dict[str, Any]:
    """
    Return a snake_case copy of a profile record.

    camelCase keys are translated; when both spellings are present, the
    snake_case value wins. Unknown keys are kept unchanged.
    """
    if not profile:
        return {}
    out: dict[str, Any] = {}
    for key, value in profile.items():
        canonical = _CAMEL_ALIASES.get(str(key), str(key))
        if canonical != key and canonical in profile:
            continue
        out[canonical] = value
    return out


def has_profile_data(profile: Optional[Mapping[str, Any]]) -> bool:
    """Return True if at least one profile field is present."""
    if not profile:
        return False
    return any(_is_present(v) for v in profile.values())


def _normalize_bucket(value: Any) -> str:
    """Normalize a bucket identifier ('6 - 20', '5,000-20,000') for lookup."""
    text = str(value).strip().lower()
    text = re.sub(r"[\s,]", "", text)
    return text.replace("–", "-")


def bucket_points(value: Any, table: tuple[tuple[str, int], ...]) -> int:
    """
    Look up the points of a bucket identifier in an ordered table.

    Returns 0 for absent or unknown buckets.
    """
    if not _is_present(value):
        return 0
    key = _normalize_bucket(value)
    for bucket, points in table:
        if bucket == key:
            return points
    return 0


def _business_age(year_established: Any, today: date) -> int:
    """Full years since the founding year, 0 when absent or unparseable."""
    if not _is_present(year_established):
        return 0
    try:
        year = int(str(year_established).strip())
    except ValueError:
        return 0
    return max(0, today.year - year)


def compute_completeness(profile: Mapping[str, Any]) -> int:
    """
    Weighted profile completeness score in [0, 100].

    60 points spread over the required fields, 30 points over the
    enhancement fields, plus fixed awards for the verification flags.
    """
    required = sum(1 for f in REQUIRED_FIELDS if _is_present(profile.get(f)))
    enhancement = sum(1 for f in ENHANCEMENT_FIELDS if _is_present(profile.get(f)))
    verification = sum(
        points
        for flag, points in VERIFICATION_POINTS
        if verification_flag(profile.get(flag))
    )

    score = (
        required / len(REQUIRED_FIELDS) * REQUIRED_WEIGHT
        + enhancement / len(ENHANCEMENT_FIELDS) * ENHANCEMENT_WEIGHT
        + verification
    )
    return int(clamp(round_half_up(score), 0, 100))


def compute_business_health(
    profile: Mapping[str, Any],
    *,
    today: Optional[date] = None,
) -> int:
    """Business health score in [0, 100] (age + team + revenue points)."""
    today = today or date.today()

    age_score = min(
        AGE_POINTS_MAX,
        _business_age(profile.get("year_established"), today) * AGE_POINTS_PER_YEAR,
    )
    team_score = bucket_points(profile.get("employee_count"), EMPLOYEE_COUNT_POINTS)
    revenue_score = bucket_points(
        profile.get("monthly_revenue"), MONTHLY_REVENUE_POINTS
    )

    return int(clamp(round_half_up(age_score + team_score + revenue_score), 0, 100))


def compute_investment_readiness(
    completeness: int,
    business_health: int,
    description: Any = None,
) -> int:
    """
    Profile-based investment readiness in [0, 100].

    The description contributes at most 20 points (one point per 50
    characters), so very long descriptions do not dominate.
    """
    length = len(str(description).strip()) if _is_present(description) else 0
    description_bonus = min(100.0, length / 10)
    score = 0.4 * completeness + 0.4 * business_health + 0.2 * description_bonus
    return int(clamp(round_half_up(score), 0, 100))


def classify_growth_potential(readiness: int) -> str:
    """Map an investment readiness score to 'high', 'medium' or 'low'."""
    if readiness >= HIGH_GROWTH_THRESHOLD:
        return "high"
    if readiness >= MEDIUM_GROWTH_THRESHOLD:
        return "medium"
    return "low"


def score_profile(
    profile: Mapping[str, Any],
    *,
    today: Optional[date] = None,
) -> ProfileScores:
    """
    Compute all profile scores.

    Callers are expected to check :func:`has_profile_data` first: an absent
    profile means "no metrics available", not a zero score.
    """
    record = normalize_profile(profile)
    completeness = compute_completeness(record)
    health = compute_business_health(record, today=today)
    readiness = compute_investment_readiness(
        completeness, health, record.get("business_description")
    )
    return ProfileScores(
        completeness=completeness,
        business_health=health,
        investment_readiness=readiness,
        growth_potential=classify_growth_potential(readiness),
    )
