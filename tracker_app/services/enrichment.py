"""
Enrichment and aggregation over validated collections.

Registrations, hours and financial-year totals are never stored on the lists;
they are recomputed from entries on every read. Every function here is a pure
function of its inputs so it can be re-run after a cache invalidation without
refetching.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Sequence

from tracker_app.services.converters import ConsentRecord, Entry, Group, Regular, Session
from tracker_app.utils.financial_year import FinancialYear
from tracker_app.utils.identifiers import round_hours
from tracker_app.utils.tags import TAG_CHILD, TAG_NEW, has_tag


@dataclass
class EnrichedSession:
    session: Session
    registrations: int = 0
    hours: float = 0.0
    group_name: str | None = None

    @property
    def session_date(self):
        return self.session.session_date

    def to_dict(self, group_key: str | None = None) -> dict[str, object]:
        session = self.session
        return {
            "id": session.id,
            "displayName": session.display_name,
            "description": session.notes,
            "date": session.date_key,
            "groupId": session.group_id,
            "groupKey": group_key,
            "groupName": self.group_name,
            "registrations": self.registrations,
            "hours": self.hours,
            "financialYear": f"FY{session.financial_year}",
            "eventbriteEventId": session.external_event_id,
        }


@dataclass
class ProfileStats:
    hours_this_fy: float = 0.0
    hours_last_fy: float = 0.0
    sessions_this_fy: set[int] = field(default_factory=set)
    sessions_last_fy: set[int] = field(default_factory=set)

    def to_dict(self) -> dict[str, object]:
        return {
            "hoursThisFY": round_hours(self.hours_this_fy),
            "hoursLastFY": round_hours(self.hours_last_fy),
            "sessionsThisFY": len(self.sessions_this_fy),
            "sessionsLastFY": len(self.sessions_last_fy),
        }


@dataclass
class FinancialYearStats:
    active_groups: int = 0
    sessions: int = 0
    hours: float = 0.0
    volunteers: int = 0

    def to_dict(self) -> dict[str, object]:
        return {
            "activeGroups": self.active_groups,
            "sessions": self.sessions,
            "hours": self.hours,
            "volunteers": self.volunteers,
        }


@dataclass
class GroupStats:
    sessions: int = 0
    hours: float = 0.0
    new_volunteers: int = 0
    children: int = 0
    total_volunteers: int = 0

    def to_dict(self) -> dict[str, object]:
        return {
            "sessions": self.sessions,
            "hours": self.hours,
            "newVolunteers": self.new_volunteers,
            "children": self.children,
            "totalVolunteers": self.total_volunteers,
        }


def enrich_sessions(
    sessions: Iterable[Session],
    entries: Iterable[Entry],
    groups: Iterable[Group],
) -> list[EnrichedSession]:
    """Attach registration counts, summed hours and group names to sessions."""

    group_names = {group.id: group.display_name for group in groups}
    totals: dict[int, list[float]] = {}
    for entry in entries:
        if entry.session_id is None:
            continue
        bucket = totals.setdefault(entry.session_id, [0, 0.0])
        bucket[0] += 1
        bucket[1] += entry.hours

    enriched: list[EnrichedSession] = []
    for session in sessions:
        count, hours = totals.get(session.id, (0, 0.0))
        enriched.append(
            EnrichedSession(
                session=session,
                registrations=int(count),
                hours=round_hours(hours),
                group_name=group_names.get(session.group_id) if session.group_id is not None else None,
            )
        )
    return enriched


def _date_of(item: Session | EnrichedSession):
    return item.session_date


def sort_sessions_by_date(sessions: Sequence[Session | EnrichedSession]) -> list:
    """Newest first."""

    return sorted(sessions, key=_date_of, reverse=True)


def sessions_in_year(sessions: Iterable[Session], fy: FinancialYear) -> list[Session]:
    return [session for session in sessions if session.financial_year == fy.start_year]


def group_session_ids(sessions: Iterable[Session], group_id: int) -> set[int]:
    return {session.id for session in sessions if session.group_id == group_id}


def aggregate_profile_stats(
    entries: Iterable[Entry],
    sessions: Iterable[Session],
    fy: FinancialYear,
    *,
    group_id: int | None = None,
) -> dict[int, ProfileStats]:
    """
    Per-profile hours and distinct session counts for this and last FY.

    Entries whose session is missing are ignored. When ``group_id`` is given,
    only sessions of that group contribute, to both hours and session counts.
    """

    session_map = {session.id: session for session in sessions}
    eligible: set[int] | None = None
    if group_id is not None:
        eligible = group_session_ids(session_map.values(), group_id)
    last_start = fy.start_year - 1

    stats: dict[int, ProfileStats] = {}
    for entry in entries:
        if entry.profile_id is None or entry.session_id is None:
            continue
        if eligible is not None and entry.session_id not in eligible:
            continue
        session = session_map.get(entry.session_id)
        if session is None:
            continue
        session_fy = session.financial_year
        if session_fy == fy.start_year:
            profile_stats = stats.setdefault(entry.profile_id, ProfileStats())
            profile_stats.hours_this_fy += entry.hours
            profile_stats.sessions_this_fy.add(entry.session_id)
        elif session_fy == last_start:
            profile_stats = stats.setdefault(entry.profile_id, ProfileStats())
            profile_stats.hours_last_fy += entry.hours
            profile_stats.sessions_last_fy.add(entry.session_id)
    return stats


def financial_year_stats(
    sessions: Iterable[Session],
    entries: Iterable[Entry],
    fy: FinancialYear,
) -> FinancialYearStats:
    """Dashboard totals for one financial year."""

    fy_sessions = sessions_in_year(sessions, fy)
    fy_session_ids = {session.id for session in fy_sessions}
    active_groups = {session.group_id for session in fy_sessions if session.group_id is not None}

    hours = 0.0
    volunteers: set[int] = set()
    for entry in entries:
        if entry.session_id not in fy_session_ids:
            continue
        hours += entry.hours
        if entry.profile_id is not None:
            volunteers.add(entry.profile_id)

    return FinancialYearStats(
        active_groups=len(active_groups),
        sessions=len(fy_sessions),
        hours=round_hours(hours),
        volunteers=len(volunteers),
    )


def group_stats(
    group: Group,
    sessions: Iterable[Session],
    entries: Iterable[Entry],
    fy: FinancialYear,
) -> GroupStats:
    """Current-FY totals for one group, including tag-derived counts."""

    fy_session_ids = {
        session.id
        for session in sessions
        if session.group_id == group.id and fy.contains(session.session_date)
    }
    fy_entries = [entry for entry in entries if entry.session_id in fy_session_ids]
    return GroupStats(
        sessions=len(fy_session_ids),
        hours=round_hours(sum(entry.hours for entry in fy_entries)),
        new_volunteers=sum(1 for entry in fy_entries if has_tag(entry.notes, TAG_NEW)),
        children=sum(1 for entry in fy_entries if has_tag(entry.notes, TAG_CHILD)),
        total_volunteers=len({entry.profile_id for entry in fy_entries if entry.profile_id is not None}),
    )


def profile_group_hours(
    profile_id: int,
    entries: Iterable[Entry],
    sessions: Iterable[Session],
    groups: Iterable[Group],
    regulars: Iterable[Regular],
    fy: FinancialYear,
) -> list[dict[str, object]]:
    """
    Hours per group for one profile, this and last FY.

    Groups where the profile is a regular appear even with no hours. Rows are
    ordered by combined hours, highest first.
    """

    session_map = {session.id: session for session in sessions}
    group_map = {group.id: group for group in groups}
    regular_ids = {
        regular.group_id: regular.id
        for regular in regulars
        if regular.profile_id == profile_id and regular.group_id is not None
    }
    last_start = fy.start_year - 1

    totals: dict[int, list[float]] = {}
    for entry in entries:
        if entry.profile_id != profile_id or entry.session_id is None:
            continue
        session = session_map.get(entry.session_id)
        if session is None or session.group_id is None:
            continue
        session_fy = session.financial_year
        if session_fy not in (fy.start_year, last_start):
            continue
        bucket = totals.setdefault(session.group_id, [0.0, 0.0])
        bucket[0 if session_fy == fy.start_year else 1] += entry.hours

    for group_id in regular_ids:
        if group_id not in totals and group_id in group_map:
            totals[group_id] = [0.0, 0.0]

    rows = []
    for group_id, (this_fy, last_fy) in totals.items():
        group = group_map.get(group_id)
        rows.append(
            {
                "groupId": group_id,
                "groupKey": group.key if group else "",
                "groupName": group.display_name if group else "Unknown",
                "hoursThisFY": round_hours(this_fy),
                "hoursLastFY": round_hours(last_fy),
                "isRegular": group_id in regular_ids,
                "regularId": regular_ids.get(group_id),
            }
        )
    rows.sort(key=lambda row: row["hoursThisFY"] + row["hoursLastFY"], reverse=True)
    return rows


def records_by_profile(records: Iterable[ConsentRecord]) -> dict[int, list[ConsentRecord]]:
    grouped: dict[int, list[ConsentRecord]] = {}
    for record in records:
        if record.profile_id is None:
            continue
        grouped.setdefault(record.profile_id, []).append(record)
    return grouped


def regulars_by_group(regulars: Iterable[Regular]) -> dict[int, list[Regular]]:
    grouped: dict[int, list[Regular]] = {}
    for regular in regulars:
        if regular.group_id is None:
            continue
        grouped.setdefault(regular.group_id, []).append(regular)
    return grouped
