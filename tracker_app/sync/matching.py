"""
Name matching between feed attendees and local profiles.

Matching is exact on the lower-cased name, first against ``matchName`` (a
stable matching key that survives display-name edits) and then against the
profile name. Jaro-Winkler similarity is only used to flag likely duplicates
after a new profile has been created; it never links an attendee on its own.
"""

from __future__ import annotations

from typing import Iterable

from rapidfuzz.distance import JaroWinkler

from tracker_app.services.converters import Profile

DEFAULT_DUPLICATE_THRESHOLD = 0.92


def normalize_name(value: str | None) -> str:
    if not value:
        return ""
    return " ".join(value.split()).lower()


def name_similarity(left: str | None, right: str | None) -> float:
    """Return Jaro-Winkler similarity between two names (0..1)."""

    first = normalize_name(left)
    second = normalize_name(right)
    if not first or not second:
        return 0.0
    score = JaroWinkler.normalized_similarity(first, second)
    return float(max(0.0, min(1.0, score)))


class ProfileMatcher:
    def __init__(self, profiles: Iterable[Profile]) -> None:
        self._by_match_name: dict[str, Profile] = {}
        self._by_name: dict[str, Profile] = {}
        self._profiles: list[Profile] = []
        for profile in profiles:
            self.add(profile)

    def add(self, profile: Profile) -> None:
        self._profiles.append(profile)
        match_key = normalize_name(profile.match_name)
        if match_key:
            self._by_match_name.setdefault(match_key, profile)
        name_key = normalize_name(profile.name)
        if name_key:
            self._by_name.setdefault(name_key, profile)

    def match(self, name: str | None) -> Profile | None:
        key = normalize_name(name)
        if not key:
            return None
        return self._by_match_name.get(key) or self._by_name.get(key)

    def similar(
        self,
        name: str,
        *,
        threshold: float = DEFAULT_DUPLICATE_THRESHOLD,
        exclude_id: int | None = None,
    ) -> list[tuple[Profile, float]]:
        """Profiles whose name scores at least ``threshold``, best first."""

        scored = []
        for profile in self._profiles:
            if profile.id == exclude_id or profile.is_group:
                continue
            score = name_similarity(name, profile.name)
            if score >= threshold:
                scored.append((profile, score))
        scored.sort(key=lambda item: item[1], reverse=True)
        return scored
