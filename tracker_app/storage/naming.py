"""
Column naming regimes for the remote lists.

Two deployments of the lists exist: the legacy lists (Crew / Event /
Volunteer lookups, session notes stored in ``Description``) and the clean
lists (Group / Session / Profile lookups, ``Notes``). The regime is resolved
once at startup and handed to the repositories and converters so nothing
downstream branches on it.
"""

from __future__ import annotations

from dataclasses import dataclass

RECORD_PROFILE_LOOKUP = "ProfileLookupId"
RECORD_PROFILE_DISPLAY = "Profile"


@dataclass(frozen=True)
class NamingScheme:
    name: str
    group_lookup: str
    group_display: str
    session_lookup: str
    session_display: str
    profile_lookup: str
    profile_display: str
    session_notes: str
    legacy: bool = False


CLEAN = NamingScheme(
    name="clean",
    group_lookup="GroupLookupId",
    group_display="Group",
    session_lookup="SessionLookupId",
    session_display="Session",
    profile_lookup="ProfileLookupId",
    profile_display="Profile",
    session_notes="Notes",
)

LEGACY = NamingScheme(
    name="legacy",
    group_lookup="CrewLookupId",
    group_display="Crew",
    session_lookup="EventLookupId",
    session_display="Event",
    profile_lookup="VolunteerLookupId",
    profile_display="Volunteer",
    session_notes="Description",
    legacy=True,
)

NAMING_SCHEMES = {scheme.name: scheme for scheme in (CLEAN, LEGACY)}


def resolve_naming_scheme(name: str | None) -> NamingScheme:
    """Return the scheme registered under ``name`` (defaults to clean)."""

    key = (name or CLEAN.name).strip().lower()
    try:
        return NAMING_SCHEMES[key]
    except KeyError:
        raise ValueError(
            f"Unknown FIELD_NAMING '{name}'. Expected one of: {', '.join(sorted(NAMING_SCHEMES))}."
        ) from None
