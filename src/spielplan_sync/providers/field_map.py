"""
Alias-list field mapping for provider records.

api-fussball.de has changed its field names between response versions
(camelCase, snake_case, German labels). Each logical field is read through
an ordered list of candidate names; the first non-empty value wins. New
provider drift only needs an extra alias here.
"""

from __future__ import annotations

from typing import Any, Mapping

FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "home_team": ("homeTeam", "home_team", "home", "heimmannschaft", "heim"),
    "away_team": ("awayTeam", "away_team", "away", "gastmannschaft", "gast"),
    "date": ("date", "datum", "kickoffDate", "kickoff_date", "gameDate"),
    "time": ("time", "uhrzeit", "kickoffTime", "kickoff_time", "anstoss"),
    "home_logo": ("homeLogo", "home_logo", "logoHome", "heimLogo"),
    "away_logo": ("awayLogo", "away_logo", "logoAway", "gastLogo"),
    "location": ("location", "venue", "spielort", "ort", "sportstaette"),
    "competition": ("competition", "league", "wettbewerb", "staffel", "liga"),
    "matchday": ("matchday", "spieltag", "round", "matchDay"),
    "result": ("result", "score", "ergebnis"),
    "source_url": ("url", "link", "gameUrl", "game_url", "spielUrl"),
}


def _coerce(value: Any) -> str | None:
    """Reduce a raw value to stripped text; nested team objects use their name."""
    if value is None:
        return None
    if isinstance(value, Mapping):
        value = value.get("name") or value.get("title")
        if value is None:
            return None
    if isinstance(value, (list, tuple, set)):
        return None
    text = str(value).strip()
    return text or None


def pick(record: Mapping[str, Any], field: str) -> str | None:
    """Return the first non-empty alias value for a logical field."""
    for alias in FIELD_ALIASES[field]:
        if alias in record:
            value = _coerce(record[alias])
            if value is not None:
                return value
    return None


def map_record(record: Mapping[str, Any]) -> dict[str, str | None]:
    """Map a raw provider record onto logical field names."""
    return {field: pick(record, field) for field in FIELD_ALIASES}
