from __future__ import annotations

import math

import pytest
import requests

from tracker_app.errors import FeedError
from tracker_app.services.converters import Profile
from tracker_app.sync.feed_client import EventbriteClient, parse_attendee, parse_event
from tracker_app.sync.matching import ProfileMatcher, name_similarity, normalize_name


class FakeResponse:
    def __init__(self, *, status_code=200, json_data=None, text: str = ""):
        self.status_code = status_code
        self._json_data = json_data or {}
        self.text = text
        self.ok = status_code < 400

    def json(self):
        return self._json_data


class FakeSession:
    def __init__(self, responses):
        self.responses = list(responses)
        self.get_calls = []

    def get(self, url, headers=None, params=None, timeout=None):
        self.get_calls.append((url, headers, params))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def make_client(session, **overrides):
    options = {"api_key": "key", "organization_id": "org-1", "session": session}
    options.update(overrides)
    return EventbriteClient(**options)


def event_payload(event_id, series_id="S1", start="2025-06-07T09:00:00Z"):
    return {
        "id": event_id,
        "series_id": series_id,
        "name": {"text": f" Event {event_id} "},
        "start": {"utc": start},
        "description": {"text": "Dig day"},
    }


class TestEventbriteClient:
    def test_parse_event_and_attendee(self):
        event = parse_event(event_payload("e1"))
        assert event.name == "Event e1"
        assert event.series_id == "S1"
        assert event.start_date == "2025-06-07T09:00:00Z"

        attendee = parse_attendee(
            {
                "profile": {"name": " Ada Lovelace ", "email": "ada@example.com"},
                "created": "2025-05-01T10:00:00Z",
                "ticket_class_name": "Child",
                "answers": [{"question_id": 315115803, "question": "Photo and Video Consent", "answer": "accepted"}],
            }
        )
        assert attendee.name == "Ada Lovelace"
        assert attendee.answers[0].question_id == "315115803"
        assert attendee.answers[0].answer_text == "accepted"

    def test_list_org_events_paginates(self):
        session = FakeSession(
            [
                FakeResponse(json_data={"events": [event_payload("e1")], "pagination": {"has_more_items": True}}),
                FakeResponse(json_data={"events": [event_payload("e2")], "pagination": {"has_more_items": False}}),
            ]
        )
        events = make_client(session).list_org_events()

        assert [event.id for event in events] == ["e1", "e2"]
        first, second = session.get_calls
        assert first[0].endswith("/organizations/org-1/events/")
        assert first[1] == {"Authorization": "Bearer key"}
        assert first[2] == {"status": "live", "page_size": 100, "page": 1}
        assert second[2]["page"] == 2

    def test_list_event_attendees_requests_answers(self):
        session = FakeSession([FakeResponse(json_data={"attendees": [{"profile": {"name": "Ada"}}]})])
        attendees = make_client(session).list_event_attendees("e1")
        assert [attendee.name for attendee in attendees] == ["Ada"]
        assert session.get_calls[0][2] == {"status": "attending", "expand": "answers", "page": 1}

    def test_feed_errors(self):
        with pytest.raises(FeedError) as excinfo:
            make_client(FakeSession([FakeResponse(status_code=429, text="slow down")])).list_event_attendees("e1")
        assert excinfo.value.message == "Events feed returned 429"

        with pytest.raises(FeedError):
            make_client(FakeSession([requests.Timeout("late")])).list_event_attendees("e1")

        unconfigured = make_client(FakeSession([]), api_key=None)
        assert not unconfigured.configured
        with pytest.raises(FeedError) as excinfo:
            unconfigured.list_event_attendees("e1")
        assert excinfo.value.status_code == 503

    def test_check_configuration_inspects_next_events(self):
        session = FakeSession(
            [
                FakeResponse(
                    json_data={
                        "events": [
                            event_payload("late", start="2025-09-01T09:00:00Z"),
                            event_payload("early", start="2025-06-01T09:00:00Z"),
                        ]
                    }
                ),
                FakeResponse(json_data={"ticket_classes": [{"name": "Adult"}, {"name": "Child (under 16)"}]}),
                FakeResponse(
                    json_data={
                        "questions": [
                            {"question": {"text": "Personal Data Consent"}, "respondent": "attendee"},
                            {"question": {"text": "Dietary needs"}, "respondent": "ticket_buyer"},
                        ]
                    }
                ),
            ]
        )
        checks = make_client(session).check_configuration(limit=1)

        assert len(checks) == 1
        result = checks[0].to_dict()
        assert result["eventId"] == "early"
        assert result["hasChildTicket"] is True
        assert result["hasPrivacyConsentQuestion"] is True
        assert result["hasPhotoConsentQuestion"] is False
        assert result["consentQuestionsPerAttendee"] is True


class TestMatching:
    def test_normalize_name(self):
        assert normalize_name("  Ada   LOVELACE ") == "ada lovelace"
        assert normalize_name(None) == ""

    def test_name_similarity(self):
        assert math.isclose(name_similarity("Ada Lovelace", "ada  lovelace"), 1.0, rel_tol=1e-6)
        assert name_similarity("", "Ada") == 0.0
        assert name_similarity("Ada Lovelace", "Zed Quinn") < 0.7

    def test_match_prefers_match_name(self):
        renamed = Profile(id=1, name="Ada King", match_name="ada lovelace")
        namesake = Profile(id=2, name="Ada Lovelace")
        matcher = ProfileMatcher([namesake, renamed])
        assert matcher.match("ADA LOVELACE").id == 1
        assert matcher.match("ada king").id == 1
        assert matcher.match("Charles Babbage") is None

    def test_similar_skips_group_profiles_and_self(self):
        profiles = [
            Profile(id=1, name="Jon Smith"),
            Profile(id=2, name="John Smith"),
            Profile(id=3, name="John Smith", is_group=True),
        ]
        matcher = ProfileMatcher(profiles)
        similar = matcher.similar("John Smith", exclude_id=2)
        assert [profile.id for profile, _ in similar] == [1]
        assert similar[0][1] >= 0.92
