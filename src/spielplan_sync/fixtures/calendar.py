"""
iCalendar export of selected fixtures.

Produces one VCALENDAR document with a VEVENT per aggregated fixture:

    BEGIN:VEVENT
    UID:3f2a9c1d0b7e@spielplan-sync
    DTSTART:20251025T120000
    DTEND:20251025T140000
    SUMMARY:U17 Liga: Hoffenheim - Bayern München U23
    DESCRIPTION:Spieler: Max Muster
    LOCATION:Dietmar-Hopp-Stadion
    END:VEVENT

Times are floating local times (no TZID); the provider gives none. Fixtures
without a kickoff time get a midday placeholder and every event lasts two
hours.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from pathlib import Path
from typing import Iterable, Optional

from ..core.models import AggregatedFixture
from ..core.types import MATCH_TYPE_SHORTHAND
from .naming import clean_club_name, league_shorthand, match_type

logger = logging.getLogger(__name__)

PRODID = "-//spielplan-sync//Fixture Export//DE"
UID_DOMAIN = "spielplan-sync"
CRLF = "\r\n"
MAX_LINE_OCTETS = 75

DATETIME_FORMAT = "%Y%m%dT%H%M%S"
NOTHING_SELECTED_MESSAGE = "No fixtures selected. Select at least one match before exporting."


class ExportError(Exception):
    """Base error for calendar export."""


class NothingSelectedError(ExportError):
    """Export was requested with no fixture selected."""

    def __init__(self, message: str = NOTHING_SELECTED_MESSAGE):
        super().__init__(message)
        self.message = message


def escape_text(value: str) -> str:
    """Escape a TEXT property value (RFC 5545 3.3.11)."""
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def fold_line(line: str) -> str:
    """Fold a content line at 75 octets without splitting UTF-8 sequences."""
    if len(line.encode("utf-8")) <= MAX_LINE_OCTETS:
        return line

    parts: list[str] = []
    current = ""
    limit = MAX_LINE_OCTETS
    for char in line:
        if len((current + char).encode("utf-8")) > limit:
            parts.append(current)
            current = char
            limit = MAX_LINE_OCTETS - 1  # continuation lines start with a space
        else:
            current += char
    parts.append(current)
    return (CRLF + " ").join(parts)


def category_label(fixture: AggregatedFixture) -> Optional[str]:
    """Age category, or for senior fixtures the league shorthand if one is known."""
    if fixture.age_category:
        return fixture.age_category
    labels = [fixture.competition, *(s.league for s in fixture.subjects)]
    for label in labels:
        shorthand = league_shorthand(label)
        if shorthand:
            return shorthand
    return None


def format_title(fixture: AggregatedFixture) -> str:
    """'U17 Liga: Hoffenheim - Bayern München U23'."""
    kind = MATCH_TYPE_SHORTHAND[match_type(fixture.competition)]
    category = category_label(fixture)
    prefix = f"{category} {kind}" if category else kind
    return f"{prefix}: {clean_club_name(fixture.home_team)} - {clean_club_name(fixture.away_team)}"


def format_description(fixture: AggregatedFixture) -> str:
    lines = [f"Spieler: {', '.join(fixture.subject_names)}"]
    if fixture.competition:
        details = fixture.competition
        if fixture.matchday:
            details = f"{details}, {fixture.matchday}"
        lines.append(details)
    lines.append(f"{fixture.home_team} - {fixture.away_team}")
    if fixture.time is None:
        lines.append("Anstoßzeit noch offen")
    return "\n".join(lines)


class CalendarExporter:
    """Serializes selected aggregated fixtures into an .ics document."""

    def __init__(
        self,
        default_time: str = "12:00",
        duration_hours: int = 2,
        now: Optional[datetime] = None,
    ):
        self.default_time = time.fromisoformat(default_time)
        self.duration = timedelta(hours=duration_hours)
        self._now = now

    @classmethod
    def from_settings(cls, settings) -> "CalendarExporter":
        return cls(
            default_time=settings.default_kickoff_time,
            duration_hours=settings.event_duration_hours,
        )

    def event_start(self, fixture: AggregatedFixture) -> datetime:
        kickoff = time.fromisoformat(fixture.time) if fixture.time else self.default_time
        return datetime.combine(date.fromisoformat(fixture.date), kickoff)

    def export(self, fixtures: Iterable[AggregatedFixture]) -> str:
        """
        Render the selected fixtures as iCalendar text.

        Unselected fixtures are ignored.

        Raises:
            NothingSelectedError: If no fixture is selected
        """
        selected = [f for f in fixtures if f.selected]
        if not selected:
            raise NothingSelectedError()

        stamp = (self._now or datetime.now(timezone.utc)).strftime(DATETIME_FORMAT) + "Z"
        lines = [
            "BEGIN:VCALENDAR",
            "VERSION:2.0",
            f"PRODID:{PRODID}",
            "CALSCALE:GREGORIAN",
            "METHOD:PUBLISH",
        ]
        for fixture in selected:
            lines.extend(self._event_lines(fixture, stamp))
        lines.append("END:VCALENDAR")

        logger.info("Exported %d fixtures to iCalendar", len(selected))
        return CRLF.join(fold_line(line) for line in lines) + CRLF

    def write(self, fixtures: Iterable[AggregatedFixture], path: Path) -> int:
        """Export to a file; returns the number of events written."""
        selected = [f for f in fixtures if f.selected]
        document = self.export(selected)
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(document)
        logger.info("Calendar written to %s", path)
        return len(selected)

    def _event_lines(self, fixture: AggregatedFixture, stamp: str) -> list[str]:
        start = self.event_start(fixture)
        end = start + self.duration

        lines = [
            "BEGIN:VEVENT",
            f"UID:{fixture.key}@{UID_DOMAIN}",
            f"DTSTAMP:{stamp}",
            f"DTSTART:{start.strftime(DATETIME_FORMAT)}",
            f"DTEND:{end.strftime(DATETIME_FORMAT)}",
            f"SUMMARY:{escape_text(format_title(fixture))}",
            f"DESCRIPTION:{escape_text(format_description(fixture))}",
        ]
        if fixture.location:
            lines.append(f"LOCATION:{escape_text(fixture.location)}")
        if fixture.source_url:
            lines.append(f"URL:{fixture.source_url}")
        lines.append("END:VEVENT")
        return lines
