"""
Team identifier extraction from fussball.de profile URLs.

A subject's profile reference looks like

    https://www.fussball.de/mannschaft/tsg-hoffenheim-u17/-/saison/2526/team-id/011MIC9NDS000000VTVG0001VTR8C1K7

The identifier is taken from the ``team-id`` path segment; for shortened or
copied links without it, a long alphanumeric token at the end of the path is
used instead.
"""

import logging
import re
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

_TEAM_ID_SEGMENT_RE = re.compile(r"/team-id/([A-Za-z0-9]+)")
_TRAILING_TOKEN_RE = re.compile(r"/([A-Za-z0-9]{20,})/?$")


def extract_team_id(profile_url: str | None) -> str | None:
    """
    Return the team identifier embedded in a profile URL, or None.

    None means "skip this subject"; it is never an error.
    """
    if not profile_url or not profile_url.strip():
        return None

    url = profile_url.strip()
    # Tolerate links pasted with "#!" fragments or query strings
    path = urlsplit(url).path if "://" in url else url

    match = _TEAM_ID_SEGMENT_RE.search(path) or _TEAM_ID_SEGMENT_RE.search(url)
    if match:
        return match.group(1)

    match = _TRAILING_TOKEN_RE.search(path)
    if match:
        return match.group(1)

    logger.debug("No team id in profile URL %s", profile_url)
    return None
