"""
Client for the external events feed (Eventbrite v3 API).

Only the three reads the reconciler needs are implemented: live organisation
events, attending attendees with their custom-question answers, and the
ticket/question configuration of an event.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping

import requests

from tracker_app.errors import FeedError

DEFAULT_API_URL = "https://www.eventbriteapi.com/v3"
PRIVACY_QUESTION_TEXT = "Personal Data Consent"
PHOTO_QUESTION_TEXT = "Photo and Video Consent"


@dataclass(frozen=True)
class FeedEvent:
    id: str
    name: str = ""
    start_date: str = ""
    series_id: str | None = None
    description: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "seriesId": self.series_id,
            "name": self.name,
            "startDate": self.start_date,
            "description": self.description,
        }


@dataclass(frozen=True)
class FeedAnswer:
    question_id: str
    question_text: str
    answer_text: str


@dataclass(frozen=True)
class FeedAttendee:
    name: str
    email: str | None = None
    created: str | None = None
    ticket_class_name: str | None = None
    answers: tuple[FeedAnswer, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class EventConfigCheck:
    event_id: str
    event_name: str
    has_child_ticket: bool
    has_privacy_consent_question: bool
    has_photo_consent_question: bool
    consent_questions_per_attendee: bool

    def to_dict(self) -> dict[str, object]:
        return {
            "eventId": self.event_id,
            "eventName": self.event_name,
            "hasChildTicket": self.has_child_ticket,
            "hasPrivacyConsentQuestion": self.has_privacy_consent_question,
            "hasPhotoConsentQuestion": self.has_photo_consent_question,
            "consentQuestionsPerAttendee": self.consent_questions_per_attendee,
        }


def parse_event(payload: Mapping[str, Any]) -> FeedEvent:
    return FeedEvent(
        id=str(payload.get("id") or ""),
        series_id=str(payload["series_id"]) if payload.get("series_id") else None,
        name=((payload.get("name") or {}).get("text") or "").strip(),
        start_date=(payload.get("start") or {}).get("utc") or "",
        description=(payload.get("description") or {}).get("text") or None,
    )


def parse_attendee(payload: Mapping[str, Any]) -> FeedAttendee:
    profile = payload.get("profile") or {}
    answers = tuple(
        FeedAnswer(
            question_id=str(answer.get("question_id") or ""),
            question_text=answer.get("question") or "",
            answer_text=answer.get("answer") or "",
        )
        for answer in payload.get("answers") or []
    )
    return FeedAttendee(
        name=(profile.get("name") or "").strip(),
        email=profile.get("email") or None,
        created=payload.get("created") or None,
        ticket_class_name=payload.get("ticket_class_name") or None,
        answers=answers,
    )


class EventbriteClient:
    def __init__(
        self,
        *,
        api_key: str | None,
        organization_id: str | None,
        base_url: str = DEFAULT_API_URL,
        session: requests.Session | None = None,
        timeout: float = 30.0,
        logger: logging.Logger | None = None,
    ) -> None:
        self.api_key = api_key
        self.organization_id = organization_id
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.organization_id)

    def _get(self, path: str, params: Mapping[str, Any] | None = None) -> dict[str, Any]:
        if not self.api_key:
            raise FeedError("Events feed is not configured", status_code=503, detail="EVENTBRITE_API_KEY not set.")
        url = f"{self.base_url}{path}"
        self.logger.debug("Feed GET", extra={"url": url, "params": dict(params or {})})
        try:
            response = self.session.get(
                url,
                headers={"Authorization": f"Bearer {self.api_key}"},
                params=params,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise FeedError("Events feed request failed", detail=str(exc)) from exc
        if not response.ok:
            raise FeedError(
                f"Events feed returned {response.status_code}",
                detail=response.text[:200] or None,
            )
        return response.json()

    def _paginate(self, path: str, key: str, params: Mapping[str, Any]) -> Iterator[Mapping[str, Any]]:
        page = 1
        while True:
            payload = self._get(path, {**params, "page": page})
            yield from payload.get(key) or []
            if not (payload.get("pagination") or {}).get("has_more_items"):
                break
            page += 1

    def list_org_events(self) -> list[FeedEvent]:
        if not self.organization_id:
            raise FeedError(
                "Events feed is not configured", status_code=503, detail="EVENTBRITE_ORGANIZATION_ID not set."
            )
        events = [
            parse_event(item)
            for item in self._paginate(
                f"/organizations/{self.organization_id}/events/",
                "events",
                {"status": "live", "page_size": 100},
            )
        ]
        self.logger.info("Fetched feed events", extra={"event_count": len(events)})
        return events

    def list_event_attendees(self, event_id: str) -> list[FeedAttendee]:
        return [
            parse_attendee(item)
            for item in self._paginate(
                f"/events/{event_id}/attendees/",
                "attendees",
                {"status": "attending", "expand": "answers"},
            )
        ]

    def check_event_configuration(self, event_id: str, event_name: str = "") -> EventConfigCheck:
        tickets = self._get(f"/events/{event_id}/ticket_classes/").get("ticket_classes") or []
        questions = self._get(f"/events/{event_id}/questions/").get("questions") or []
        question_texts = [((question.get("question") or {}).get("text") or "") for question in questions]
        return EventConfigCheck(
            event_id=event_id,
            event_name=event_name,
            has_child_ticket=any("child" in (ticket.get("name") or "").lower() for ticket in tickets),
            has_privacy_consent_question=PRIVACY_QUESTION_TEXT in question_texts,
            has_photo_consent_question=PHOTO_QUESTION_TEXT in question_texts,
            consent_questions_per_attendee=any(question.get("respondent") == "attendee" for question in questions),
        )

    def check_configuration(self, limit: int = 5) -> list[EventConfigCheck]:
        """Check the next ``limit`` live events for child tickets and consent questions."""

        events = sorted(self.list_org_events(), key=lambda event: event.start_date)
        return [self.check_event_configuration(event.id, event.name) for event in events[:limit]]
