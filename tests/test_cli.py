import json
from datetime import date, timedelta

from tracker_app.errors import FeedError
from tracker_app.sync.feed_client import EventConfigCheck, FeedAttendee, FeedEvent


def test_sync_sessions_command(runner, store, feed):
    store.add("groups", Title="Sat", EventbriteSeriesID="S1")
    upcoming = (date.today() + timedelta(days=3)).isoformat()
    feed.events = [FeedEvent(id="e1", name="Dig", start_date=upcoming, series_id="S1")]

    result = runner.invoke(args=["sync", "sessions"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.output) == {"matchedEvents": 1, "newSessions": 1, "skipped": 0, "totalEvents": 1}


def test_sync_attendees_command(runner, store, feed):
    group = store.add("groups", Title="Sat")
    upcoming = (date.today() + timedelta(days=3)).isoformat()
    store.add("sessions", Title=f"{upcoming} Sat", Date=upcoming, GroupLookupId=str(group), EventbriteEventID="e1")
    feed.attendees["e1"] = [FeedAttendee(name="Ada Lovelace")]

    result = runner.invoke(args=["sync", "attendees"])

    assert result.exit_code == 0, result.output
    output = json.loads(result.output)
    assert output["newEntries"] == 1
    assert output["newProfiles"] == 1


def test_sync_all_command(runner, store, feed):
    result = runner.invoke(args=["sync", "all"])
    assert result.exit_code == 0, result.output
    assert "summary" in json.loads(result.output)


def test_sync_command_reports_feed_failures(runner, feed, monkeypatch):
    def unavailable():
        raise FeedError("Events feed unavailable")

    monkeypatch.setattr(feed, "list_org_events", unavailable)

    result = runner.invoke(args=["sync", "sessions"])

    assert result.exit_code == 1
    assert "Events feed unavailable" in result.output


def test_check_config_command(runner, feed):
    feed.config_checks = [
        EventConfigCheck(
            event_id=f"e{index}",
            event_name="Dig",
            has_child_ticket=False,
            has_privacy_consent_question=True,
            has_photo_consent_question=True,
            consent_questions_per_attendee=False,
        )
        for index in range(3)
    ]

    result = runner.invoke(args=["sync", "check-config", "--limit", "2"])

    assert result.exit_code == 0, result.output
    checks = json.loads(result.output)
    assert [check["eventId"] for check in checks] == ["e0", "e1"]
