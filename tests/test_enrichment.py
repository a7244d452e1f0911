import copy
from datetime import date

import pytest

from tracker_app.services.badges import (
    STATUS_ACCEPTED,
    STATUS_DECLINED,
    STATUS_INVITED,
    TYPE_CHARITY_MEMBERSHIP,
    TYPE_DISCOUNT_CARD,
    TYPE_PHOTO_CONSENT,
    has_accepted,
    meets_hours_threshold,
    resolve_badges,
)
from tracker_app.services.converters import ConsentRecord, Entry, Group, Regular, Session
from tracker_app.services.enrichment import (
    aggregate_profile_stats,
    enrich_sessions,
    financial_year_stats,
    group_stats,
    profile_group_hours,
    sort_sessions_by_date,
)
from tracker_app.utils.financial_year import FinancialYear

FY = FinancialYear(2025)


def make_session(session_id, day, group_id=1):
    return Session(
        id=session_id,
        lookup_key=f"{day.isoformat()} sat",
        display_name=f"Session {session_id}",
        date=day.isoformat(),
        session_date=day,
        group_id=group_id,
    )


@pytest.fixture
def groups():
    return [
        Group(id=1, lookup_key="Sat", display_name="Saturday Dig"),
        Group(id=2, lookup_key="Wed", display_name="Wednesday Crew"),
    ]


@pytest.fixture
def sessions():
    return [
        make_session(10, date(2025, 5, 3)),
        make_session(11, date(2025, 6, 7)),
        make_session(12, date(2024, 9, 14)),
        make_session(13, date(2025, 7, 2), group_id=2),
    ]


class TestSessionEnrichment:
    def test_enrich_sessions_sums_hours_and_registrations(self, groups, sessions):
        entries = [
            Entry(id=1, session_id=10, profile_id=100, hours=3.0),
            Entry(id=2, session_id=10, profile_id=101, hours=2.5),
        ]
        enriched = {item.session.id: item for item in enrich_sessions(sessions, entries, groups)}
        assert enriched[10].registrations == 2
        assert enriched[10].hours == 5.5
        assert enriched[10].group_name == "Saturday Dig"
        assert enriched[11].registrations == 0
        assert enriched[11].hours == 0.0
        assert enriched[10].to_dict("sat")["financialYear"] == "FY2025"

    def test_sort_sessions_by_date_is_newest_first(self, sessions):
        ordered = sort_sessions_by_date(sessions)
        assert [session.id for session in ordered] == [13, 11, 10, 12]


class TestProfileStats:
    def test_counts_distinct_sessions(self, sessions):
        entries = [
            Entry(id=1, session_id=10, profile_id=100, hours=3.0),
            Entry(id=2, session_id=10, profile_id=100, hours=1.0),
            Entry(id=3, session_id=11, profile_id=100, hours=2.0),
            Entry(id=4, session_id=12, profile_id=100, hours=4.0),
            Entry(id=5, session_id=999, profile_id=100, hours=8.0),
        ]
        stats = aggregate_profile_stats(entries, sessions, FY)[100].to_dict()
        assert stats == {"hoursThisFY": 6.0, "hoursLastFY": 4.0, "sessionsThisFY": 2, "sessionsLastFY": 1}

    def test_group_filter(self, sessions):
        entries = [
            Entry(id=1, session_id=10, profile_id=100, hours=3.0),
            Entry(id=2, session_id=13, profile_id=100, hours=2.0),
            Entry(id=3, session_id=13, profile_id=101, hours=1.0),
        ]
        stats = aggregate_profile_stats(entries, sessions, FY, group_id=2)
        assert set(stats) == {100, 101}
        assert stats[100].to_dict()["hoursThisFY"] == 2.0
        assert stats[100].to_dict()["sessionsThisFY"] == 1

    def test_profile_without_entries_has_no_stats(self, sessions):
        assert 100 not in aggregate_profile_stats([], sessions, FY)

    def test_profile_group_hours_includes_regular_groups(self, groups, sessions):
        entries = [
            Entry(id=1, session_id=10, profile_id=100, hours=3.0),
            Entry(id=2, session_id=12, profile_id=100, hours=1.5),
        ]
        regulars = [Regular(id=50, profile_id=100, group_id=2)]
        rows = profile_group_hours(100, entries, sessions, groups, regulars, FY)
        assert [row["groupKey"] for row in rows] == ["sat", "wed"]
        assert rows[0]["hoursThisFY"] == 3.0
        assert rows[0]["hoursLastFY"] == 1.5
        assert rows[0]["isRegular"] is False
        assert rows[1]["isRegular"] is True
        assert rows[1]["regularId"] == 50
        assert rows[1]["hoursThisFY"] == 0.0


class TestFinancialYearAndGroupStats:
    def test_financial_year_stats(self, sessions):
        entries = [
            Entry(id=1, session_id=10, profile_id=100, hours=3.0),
            Entry(id=2, session_id=13, profile_id=101, hours=2.0),
            Entry(id=3, session_id=12, profile_id=102, hours=9.0),
        ]
        stats = financial_year_stats(sessions, entries, FY).to_dict()
        assert stats == {"activeGroups": 2, "sessions": 3, "hours": 5.0, "volunteers": 2}

    def test_group_stats_counts_tags(self, groups, sessions):
        entries = [
            Entry(id=1, session_id=10, profile_id=100, hours=3.0, notes="#New #Child"),
            Entry(id=2, session_id=11, profile_id=100, hours=2.0, notes="#Regular"),
            Entry(id=3, session_id=11, profile_id=101, hours=1.0, notes="#new"),
            Entry(id=4, session_id=12, profile_id=102, hours=9.0, notes="#New"),
        ]
        stats = group_stats(groups[0], sessions, entries, FY).to_dict()
        assert stats == {"sessions": 2, "hours": 6.0, "newVolunteers": 2, "children": 1, "totalVolunteers": 2}


class TestAggregationIsRepeatable:
    @pytest.fixture
    def entries(self):
        return [
            Entry(id=1, session_id=10, profile_id=100, hours=3.0, notes="#New"),
            Entry(id=2, session_id=11, profile_id=100, hours=2.0),
            Entry(id=3, session_id=13, profile_id=101, hours=1.5, notes="#Child"),
            Entry(id=4, session_id=12, profile_id=102, hours=4.0),
        ]

    def test_same_inputs_give_same_output(self, groups, sessions, entries):
        def run():
            return {
                "sessions": [item.to_dict("sat") for item in enrich_sessions(sessions, entries, groups)],
                "profiles": {
                    profile_id: stats.to_dict()
                    for profile_id, stats in aggregate_profile_stats(entries, sessions, FY).items()
                },
                "year": financial_year_stats(sessions, entries, FY).to_dict(),
                "group": group_stats(groups[0], sessions, entries, FY).to_dict(),
            }

        assert run() == run()

    def test_inputs_are_not_modified(self, groups, sessions, entries):
        snapshot = copy.deepcopy((groups, sessions, entries))
        enrich_sessions(sessions, entries, groups)
        aggregate_profile_stats(entries, sessions, FY)
        financial_year_stats(sessions, entries, FY)
        group_stats(groups[0], sessions, entries, FY)
        sort_sessions_by_date(sessions)
        assert (groups, sessions, entries) == snapshot


class TestBadges:
    def test_membership_requires_accepted_status(self):
        records = [
            ConsentRecord(id=1, profile_id=100, type=TYPE_CHARITY_MEMBERSHIP, status=STATUS_ACCEPTED),
            ConsentRecord(id=2, profile_id=101, type=TYPE_CHARITY_MEMBERSHIP, status=STATUS_INVITED),
        ]
        badges = resolve_badges(records)
        assert badges.is_member(100)
        assert not badges.is_member(101)
        assert not badges.is_member(None)

    def test_last_card_record_wins(self):
        records = [
            ConsentRecord(id=1, profile_id=100, type=TYPE_DISCOUNT_CARD, status=STATUS_INVITED),
            ConsentRecord(id=2, profile_id=100, type=TYPE_DISCOUNT_CARD, status=STATUS_ACCEPTED),
        ]
        assert resolve_badges(records).card_status(100) == STATUS_ACCEPTED
        assert resolve_badges(records).card_status(101) is None

    def test_membership_is_independent_of_hours(self):
        records = [ConsentRecord(id=1, profile_id=100, type=TYPE_CHARITY_MEMBERSHIP, status=STATUS_ACCEPTED)]
        assert resolve_badges(records).is_member(100)
        assert not meets_hours_threshold(4.5, 15)
        assert meets_hours_threshold(15.0, 15)

    def test_has_accepted(self):
        records = [
            ConsentRecord(id=1, profile_id=100, type=TYPE_PHOTO_CONSENT, status=STATUS_ACCEPTED),
            ConsentRecord(id=2, profile_id=101, type=TYPE_PHOTO_CONSENT, status=STATUS_DECLINED),
        ]
        assert has_accepted(records, 100, TYPE_PHOTO_CONSENT)
        assert not has_accepted(records, 101, TYPE_PHOTO_CONSENT)
