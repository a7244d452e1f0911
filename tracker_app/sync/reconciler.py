"""
Reconcile the external events feed against the remote lists.

Every operation is idempotent: events already linked to a session, profiles
already registered for a session, and consent records already held for a
``(profile, type)`` pair are recognised through in-memory sets built once per
run, so re-running against an unchanged feed writes nothing new.

Individual feed records that cannot be processed are logged and skipped; a run
always reports the counts it achieved.
"""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timezone
from typing import Callable, Iterable, Mapping, Protocol

from tracker_app.errors import FeedError, StorageError
from tracker_app.metrics import record_sync_created, record_sync_run, record_sync_skipped
from tracker_app.services.badges import (
    STATUS_ACCEPTED,
    STATUS_DECLINED,
    TYPE_PHOTO_CONSENT,
    TYPE_PRIVACY_CONSENT,
    has_accepted,
)
from tracker_app.services.converters import ConsentRecord, Entry, Group, Profile, Regular, Session
from tracker_app.services.data_service import DataService
from tracker_app.sync.feed_client import PHOTO_QUESTION_TEXT, PRIVACY_QUESTION_TEXT, FeedAttendee, FeedEvent
from tracker_app.sync.matching import DEFAULT_DUPLICATE_THRESHOLD, ProfileMatcher
from tracker_app.utils.financial_year import parse_date
from tracker_app.utils.tags import TAG_CHILD, TAG_EVENTBRITE, TAG_NEW, TAG_NO_PHOTO, TAG_REGULAR, append_tag, has_tag, join_tags

DEFAULT_PRIVACY_QUESTION_ID = "315115173"
DEFAULT_PHOTO_QUESTION_ID = "315115803"


class EventsFeed(Protocol):
    def list_org_events(self) -> list[FeedEvent]: ...

    def list_event_attendees(self, event_id: str) -> list[FeedAttendee]: ...


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


class _Counters:
    def to_dict(self) -> dict[str, object]:
        return {_camel(key): value for key, value in asdict(self).items()}


@dataclass
class SessionSyncResult(_Counters):
    total_events: int = 0
    matched_events: int = 0
    new_sessions: int = 0
    skipped: int = 0


@dataclass
class AttendeeSyncResult(_Counters):
    sessions_processed: int = 0
    new_profiles: int = 0
    new_entries: int = 0
    new_records: int = 0
    updated_records: int = 0
    skipped: int = 0
    possible_duplicates: list[dict[str, object]] = field(default_factory=list)


@dataclass
class RefreshResult(_Counters):
    added_regulars: int = 0
    added_from_eventbrite: int = 0
    new_profiles: int = 0
    updated_records: int = 0
    no_photo_tagged: int = 0


@dataclass(frozen=True)
class ConsentQuestions:
    """Map feed custom questions (by id or by text) onto consent record types."""

    by_id: Mapping[str, str]
    by_text: Mapping[str, str]

    @classmethod
    def default(
        cls,
        privacy_question_id: str = DEFAULT_PRIVACY_QUESTION_ID,
        photo_question_id: str = DEFAULT_PHOTO_QUESTION_ID,
    ) -> "ConsentQuestions":
        return cls(
            by_id={privacy_question_id: TYPE_PRIVACY_CONSENT, photo_question_id: TYPE_PHOTO_CONSENT},
            by_text={PRIVACY_QUESTION_TEXT: TYPE_PRIVACY_CONSENT, PHOTO_QUESTION_TEXT: TYPE_PHOTO_CONSENT},
        )

    def record_type(self, question_id: str, question_text: str) -> str | None:
        return self.by_id.get(question_id) or self.by_text.get(question_text)


def consent_status(answer: str) -> str:
    return STATUS_ACCEPTED if answer == "accepted" else STATUS_DECLINED


class _WorkingSet:
    """Local state loaded once per run and extended as the run writes."""

    def __init__(
        self,
        data: DataService,
        *,
        profiles: list[Profile],
        entries: list[Entry],
        records: list[ConsentRecord],
    ) -> None:
        self.data = data
        self.profiles = profiles
        self.entries = entries
        self.records = records
        self.matcher = ProfileMatcher(profiles)
        self._profile_ids_by_session: dict[int, set[int]] = {}
        self._sessions_by_profile: dict[int, set[int]] = {}
        for entry in entries:
            self._index_entry(entry)

    def _index_entry(self, entry: Entry) -> None:
        if entry.session_id is None or entry.profile_id is None:
            return
        self._profile_ids_by_session.setdefault(entry.session_id, set()).add(entry.profile_id)
        self._sessions_by_profile.setdefault(entry.profile_id, set()).add(entry.session_id)

    def profile_ids_for(self, session_id: int) -> set[int]:
        return self._profile_ids_by_session.setdefault(session_id, set())

    def is_new_volunteer(self, profile_id: int, session_id: int) -> bool:
        """True when the profile has no entry in any other session."""

        return not (self._sessions_by_profile.get(profile_id, set()) - {session_id})

    def profile_by_id(self, profile_id: int) -> Profile | None:
        return next((profile for profile in self.profiles if profile.id == profile_id), None)

    def add_entry(self, session_id: int, profile_id: int, tags: list[str]) -> int:
        notes = join_tags(tags)
        entry_id = self.data.create_entry(session_id, profile_id, notes=notes or None)
        entry = Entry(id=entry_id, session_id=session_id, profile_id=profile_id, notes=notes or None)
        self.entries.append(entry)
        self._index_entry(entry)
        return entry_id

    def create_profile(self, name: str, email: str | None) -> Profile:
        profile_id = self.data.create_profile(name, email=email)
        profile = Profile(id=profile_id, name=name, email=email)
        self.profiles.append(profile)
        self.matcher.add(profile)
        return profile


class SyncReconciler:
    def __init__(
        self,
        data: DataService,
        feed: EventsFeed,
        *,
        consent_questions: ConsentQuestions | None = None,
        duplicate_threshold: float = DEFAULT_DUPLICATE_THRESHOLD,
        today: Callable[[], date] = date.today,
        logger: logging.Logger | None = None,
    ) -> None:
        self.data = data
        self.feed = feed
        self.consent_questions = consent_questions or ConsentQuestions.default()
        self.duplicate_threshold = duplicate_threshold
        self.today = today
        self.logger = logger or logging.getLogger(__name__)

    # Sessions -------------------------------------------------------------------

    def reconcile_sessions(self) -> SessionSyncResult:
        """Create a session for every feed event in a linked series that has none yet."""

        started = time.monotonic()
        try:
            result = self._reconcile_sessions()
        except Exception:
            record_sync_run(operation="sessions", status="failure", duration_seconds=time.monotonic() - started)
            raise
        record_sync_run(operation="sessions", status="success", duration_seconds=time.monotonic() - started)
        record_sync_created("session", result.new_sessions)
        self.logger.info("Session sync complete", extra=result.to_dict())
        return result

    def _reconcile_sessions(self) -> SessionSyncResult:
        events = self.feed.list_org_events()
        groups = self.data.groups()
        sessions = self.data.sessions()

        groups_by_series = {group.external_series_id: group for group in groups if group.external_series_id}
        known_event_ids = {session.external_event_id for session in sessions if session.external_event_id}

        result = SessionSyncResult(total_events=len(events))
        for event in events:
            group = groups_by_series.get(event.series_id) if event.series_id else None
            if group is None:
                continue
            result.matched_events += 1
            if event.id in known_event_ids:
                continue
            event_date = parse_date(event.start_date)
            if event_date is None:
                self.logger.warning(
                    "Skipping feed event without a usable start date",
                    extra={"event_id": event.id, "start_date": event.start_date},
                )
                record_sync_skipped("sessions")
                result.skipped += 1
                continue
            try:
                self.data.create_session(
                    group,
                    event_date,
                    name=event.name or None,
                    external_event_id=event.id,
                )
            except StorageError as exc:
                self.logger.error(
                    "Failed to create session for feed event",
                    extra={"event_id": event.id, "error": exc.message},
                )
                record_sync_skipped("sessions")
                result.skipped += 1
                continue
            known_event_ids.add(event.id)
            result.new_sessions += 1
        return result

    def unmatched_events(self) -> list[FeedEvent]:
        """Feed events that belong to no linked series and are not already sessions."""

        events = self.feed.list_org_events()
        series_ids = {group.external_series_id for group in self.data.groups() if group.external_series_id}
        known_event_ids = {session.external_event_id for session in self.data.sessions() if session.external_event_id}
        return [
            event
            for event in events
            if (not event.series_id or event.series_id not in series_ids) and event.id not in known_event_ids
        ]

    # Attendees ------------------------------------------------------------------

    def _working_set(self) -> _WorkingSet:
        return _WorkingSet(
            self.data,
            profiles=self.data.profiles(),
            entries=self.data.entries(),
            records=self.data.records(),
        )

    def reconcile_attendees(self) -> AttendeeSyncResult:
        """Register feed attendees of today's and future linked sessions."""

        started = time.monotonic()
        try:
            result = self._reconcile_attendees()
        except Exception:
            record_sync_run(operation="attendees", status="failure", duration_seconds=time.monotonic() - started)
            raise
        record_sync_run(operation="attendees", status="success", duration_seconds=time.monotonic() - started)
        record_sync_created("profile", result.new_profiles)
        record_sync_created("entry", result.new_entries)
        record_sync_created("record", result.new_records)
        self.logger.info(
            "Attendee sync complete",
            extra={key: value for key, value in result.to_dict().items() if key != "possibleDuplicates"},
        )
        return result

    def _reconcile_attendees(self) -> AttendeeSyncResult:
        sessions = self.data.sessions()
        today = self.today()
        live_sessions = [
            session for session in sessions if session.external_event_id and session.session_date >= today
        ]
        working = self._working_set()
        result = AttendeeSyncResult()

        for session in live_sessions:
            try:
                attendees = self.feed.list_event_attendees(session.external_event_id)
            except FeedError as exc:
                self.logger.error(
                    "Could not fetch attendees for session",
                    extra={"session_id": session.id, "event_id": session.external_event_id, "error": exc.message},
                )
                record_sync_skipped("attendees")
                result.skipped += 1
                continue
            result.sessions_processed += 1
            self.logger.debug(
                "Processing feed attendees",
                extra={"session_id": session.id, "attendee_count": len(attendees)},
            )
            for attendee in attendees:
                self._process_attendee(session, attendee, working, result)
        return result

    def _process_attendee(
        self,
        session: Session,
        attendee: FeedAttendee,
        working: _WorkingSet,
        result: AttendeeSyncResult | RefreshResult,
    ) -> None:
        if not attendee.name:
            self.logger.warning("Skipping feed attendee without a name", extra={"session_id": session.id})
            record_sync_skipped("attendees")
            if isinstance(result, AttendeeSyncResult):
                result.skipped += 1
            return
        try:
            profile = working.matcher.match(attendee.name)
            if profile is None:
                profile = working.create_profile(attendee.name, attendee.email)
                result.new_profiles += 1
                self.logger.info("Created profile from feed", extra={"profile_id": profile.id})
                if isinstance(result, AttendeeSyncResult):
                    self._note_duplicates(profile, working, result)

            registered = working.profile_ids_for(session.id)
            if profile.id not in registered:
                tags = []
                if working.is_new_volunteer(profile.id, session.id):
                    tags.append(TAG_NEW)
                if attendee.ticket_class_name and "child" in attendee.ticket_class_name.lower():
                    tags.append(TAG_CHILD)
                tags.append(TAG_EVENTBRITE)
                working.add_entry(session.id, profile.id, tags)
                if isinstance(result, AttendeeSyncResult):
                    result.new_entries += 1
                else:
                    result.added_from_eventbrite += 1

            if self.data.records_available:
                self._upsert_consent(profile, attendee, working, result)
        except StorageError as exc:
            self.logger.error(
                "Failed to reconcile feed attendee",
                extra={"session_id": session.id, "error": exc.message},
            )
            record_sync_skipped("attendees")
            if isinstance(result, AttendeeSyncResult):
                result.skipped += 1

    def _note_duplicates(self, profile: Profile, working: _WorkingSet, result: AttendeeSyncResult) -> None:
        for candidate, score in working.matcher.similar(
            profile.name, threshold=self.duplicate_threshold, exclude_id=profile.id
        ):
            result.possible_duplicates.append(
                {
                    "profileId": profile.id,
                    "name": profile.name,
                    "candidateId": candidate.id,
                    "candidateName": candidate.name,
                    "score": round(score, 3),
                }
            )

    def _upsert_consent(
        self,
        profile: Profile,
        attendee: FeedAttendee,
        working: _WorkingSet,
        result: AttendeeSyncResult | RefreshResult,
    ) -> None:
        record_date = attendee.created or datetime.now(timezone.utc).isoformat()
        for answer in attendee.answers:
            if not answer.answer_text:
                continue
            record_type = self.consent_questions.record_type(answer.question_id, answer.question_text)
            if record_type is None:
                continue
            _, created = self.data.upsert_record(
                working.records,
                profile.id,
                record_type,
                consent_status(answer.answer_text),
                record_date,
            )
            if isinstance(result, AttendeeSyncResult):
                if created:
                    result.new_records += 1
                else:
                    result.updated_records += 1
            else:
                result.updated_records += 1

    # Regulars and session refresh -----------------------------------------------

    def reconcile_regulars(
        self,
        session: Session,
        regulars: Iterable[Regular],
        working: _WorkingSet,
    ) -> int:
        """Add an entry tagged ``#Regular`` for each regular of the session's group."""

        added = 0
        registered = working.profile_ids_for(session.id)
        for regular in regulars:
            if regular.group_id != session.group_id or regular.profile_id is None:
                continue
            if regular.profile_id in registered:
                continue
            tags = [TAG_REGULAR]
            if working.is_new_volunteer(regular.profile_id, session.id):
                tags.append(TAG_NEW)
            working.add_entry(session.id, regular.profile_id, tags)
            added += 1
        return added

    def refresh_session(self, group: Group, session: Session) -> RefreshResult:
        """
        Bring one session up to date: regulars, feed attendees, then photo tags.

        Unlike the scheduled attendee sync this also runs for past sessions,
        because an operator asked for it explicitly.
        """

        started = time.monotonic()
        working = self._working_set()
        result = RefreshResult()
        try:
            result.added_regulars = self.reconcile_regulars(session, self.data.regulars(), working)

            if session.external_event_id:
                attendees = self.feed.list_event_attendees(session.external_event_id)
                self.logger.info(
                    "Refreshing session from feed",
                    extra={"session_id": session.id, "group": group.key, "attendee_count": len(attendees)},
                )
                for attendee in attendees:
                    self._process_attendee(session, attendee, working, result)

            result.no_photo_tagged = self.tag_missing_photo_consent(session, working)
        except Exception:
            record_sync_run(operation="refresh", status="failure", duration_seconds=time.monotonic() - started)
            raise
        record_sync_run(operation="refresh", status="success", duration_seconds=time.monotonic() - started)
        self.logger.info("Session refresh complete", extra={"session_id": session.id, **result.to_dict()})
        return result

    def tag_missing_photo_consent(self, session: Session, working: _WorkingSet) -> int:
        """Append ``#NoPhoto`` to entries of individuals without accepted photo consent."""

        tagged = 0
        for entry in self.data.entries():
            if entry.session_id != session.id or entry.profile_id is None:
                continue
            profile = working.profile_by_id(entry.profile_id)
            if profile is not None and profile.is_group:
                continue
            if has_accepted(working.records, entry.profile_id, TYPE_PHOTO_CONSENT):
                continue
            if has_tag(entry.notes, TAG_NO_PHOTO):
                continue
            self.data.update_entry(entry.id, notes=append_tag(entry.notes, TAG_NO_PHOTO))
            tagged += 1
        return tagged

    # Combined -------------------------------------------------------------------

    def reconcile_all(self) -> dict[str, object]:
        sessions = self.reconcile_sessions()
        attendees = self.reconcile_attendees()
        summary = (
            f"{sessions.new_sessions} new sessions from {sessions.matched_events} matched events; "
            f"{attendees.new_profiles} new profiles, {attendees.new_entries} new entries, "
            f"{attendees.new_records} new and {attendees.updated_records} updated records "
            f"across {attendees.sessions_processed} sessions"
        )
        return {"sessions": sessions.to_dict(), "attendees": attendees.to_dict(), "summary": summary}
