"""
Membership and discount-card status derived from consent records.

Membership is a discrete consent state. The "15 hours this financial year"
highlight is a separate threshold check made by callers against computed
hours, so a profile can be a member without meeting this year's threshold.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from tracker_app.services.converters import ConsentRecord

TYPE_PRIVACY_CONSENT = "Privacy Consent"
TYPE_PHOTO_CONSENT = "Photo Consent"
TYPE_CHARITY_MEMBERSHIP = "Charity Membership"
TYPE_DISCOUNT_CARD = "Discount Card"

STATUS_ACCEPTED = "Accepted"
STATUS_DECLINED = "Declined"
STATUS_INVITED = "Invited"
STATUS_EXPIRED = "Expired"

DEFAULT_RECORD_TYPES = (
    TYPE_PRIVACY_CONSENT,
    TYPE_PHOTO_CONSENT,
    TYPE_CHARITY_MEMBERSHIP,
    TYPE_DISCOUNT_CARD,
)
DEFAULT_RECORD_STATUSES = (STATUS_ACCEPTED, STATUS_DECLINED, STATUS_INVITED, STATUS_EXPIRED)


@dataclass
class BadgeLookups:
    member_ids: set[int] = field(default_factory=set)
    card_status_by_profile: dict[int, str] = field(default_factory=dict)

    def is_member(self, profile_id: int | None) -> bool:
        return profile_id is not None and profile_id in self.member_ids

    def card_status(self, profile_id: int | None) -> str | None:
        if profile_id is None:
            return None
        return self.card_status_by_profile.get(profile_id)


def resolve_badges(records: Iterable[ConsentRecord]) -> BadgeLookups:
    """Single pass over consent records; the last discount-card record seen wins."""

    lookups = BadgeLookups()
    for record in records:
        if record.profile_id is None:
            continue
        if record.type == TYPE_CHARITY_MEMBERSHIP and record.status == STATUS_ACCEPTED:
            lookups.member_ids.add(record.profile_id)
        elif record.type == TYPE_DISCOUNT_CARD:
            lookups.card_status_by_profile[record.profile_id] = record.status
    return lookups


def meets_hours_threshold(hours_this_fy: float, threshold: float) -> bool:
    return hours_this_fy >= threshold


def has_accepted(records: Iterable[ConsentRecord], profile_id: int, record_type: str) -> bool:
    return any(
        record.profile_id == profile_id and record.type == record_type and record.status == STATUS_ACCEPTED
        for record in records
    )
