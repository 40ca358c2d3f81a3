"""Team-name utilities for fixture matching and calendar titles.

Two different transforms live here and must not be confused:

- normalize_team_name(): matching key only ("TSG 1899 Hoffenheim U17" ->
  "tsg 1899 hoffenheim"). Stored names are never rewritten.
- clean_club_name(): opinionated display form for calendar titles
  ("FC Bayern München U17 2" -> "Bayern München U23").
"""
import re
from typing import Iterable, Optional

from ..core.types import MatchType

AGE_CATEGORY_RE = re.compile(r"(?<![A-Za-z0-9])U\s?(\d{2})(?!\d)", re.IGNORECASE)

# German junior age groups
JUNIOR_CATEGORIES = {
    "a-junioren": "U19",
    "b-junioren": "U17",
    "c-junioren": "U15",
    "d-junioren": "U13",
    "a-jugend": "U19",
    "b-jugend": "U17",
    "c-jugend": "U15",
    "d-jugend": "U13",
}

# Club legal-form and association tokens dropped from display names
CLUB_PREFIX_TOKENS = {
    "fc", "sc", "sv", "tsv", "tsg", "vfb", "vfl", "vfr", "bv", "fsv", "ssv",
    "spvgg", "sg", "jsg", "jfg", "tus", "ac", "fk", "e.v.", "ev",
}

RESERVE_TOKENS = {"ii", "u23"}
RESERVE_SUFFIX = "U23"

_YEAR_TOKEN_RE = re.compile(r"^(18|19|20)\d{2}$")
# Founding years that clubs are known by ("TSV 1860 München")
NAME_YEARS = {"1860"}
_ORDINAL_TOKEN_RE = re.compile(r"^\d+\.$")

# Ordered: first hit wins, more specific labels first
LEAGUE_SHORTHANDS: tuple[tuple[str, str], ...] = (
    ("2. bundesliga", "2. BL"),
    ("bundesliga", "BL"),
    ("3. liga", "3. Liga"),
    ("regionalliga", "RL"),
    ("oberliga", "OL"),
    ("verbandsliga", "VL"),
    ("landesliga", "LL"),
    ("bezirksliga", "BZL"),
    ("kreisliga", "KL"),
)

CUP_KEYWORDS = ("pokal", "cup", "trophy", "masters")
FRIENDLY_KEYWORDS = ("freundschaft", "testspiel", "friendly", "test")


def extract_age_category(text: Optional[str]) -> Optional[str]:
    """
    Return the age category named in a team or league label ("U17"), or None.

    Understands both U-numbers and the German A-/B-/C-/D-Junioren names.
    """
    if not text:
        return None
    match = AGE_CATEGORY_RE.search(text)
    if match:
        return f"U{match.group(1)}"
    lowered = text.lower()
    for label, category in JUNIOR_CATEGORIES.items():
        if label in lowered:
            return category
    return None


def first_age_category(labels: Iterable[Optional[str]]) -> Optional[str]:
    """First age category found across several labels."""
    for label in labels:
        category = extract_age_category(label)
        if category:
            return category
    return None


def age_category_rank(category: Optional[str]) -> tuple[int, int]:
    """
    Sort rank for an age category.

    Senior (None) sorts first, then older categories before younger ones:
    None < U23 < U19 < U17 < U15.
    """
    if category is None:
        return (0, 0)
    match = AGE_CATEGORY_RE.fullmatch(category.strip())
    if not match:
        return (2, 0)
    return (1, -int(match.group(1)))


def normalize_team_name(name: Optional[str], strip_age_categories: bool = True) -> str:
    """Matching key for a team name: age tokens removed, whitespace collapsed, case-folded."""
    if not name:
        return ""
    if strip_age_categories:
        name = AGE_CATEGORY_RE.sub(" ", name)
    return " ".join(name.split()).casefold()


def is_reserve_team(name: Optional[str]) -> bool:
    """Second teams: "... II", "... U23" or a trailing "2" after the age category."""
    if not name:
        return False
    tokens = name.split()
    if any(t.casefold() in RESERVE_TOKENS for t in tokens):
        return True
    without_age = [t for t in tokens if not AGE_CATEGORY_RE.fullmatch(t)]
    return bool(without_age) and without_age[-1] in ("2", "2.")


def clean_club_name(name: Optional[str]) -> str:
    """
    Display form of a team name for calendar titles.

    Drops legal-form tokens, founding years outside NAME_YEARS, ordinals,
    age categories and reserve markers; reserve sides get a "U23" suffix.
    """
    if not name:
        return ""
    tokens = name.split()
    reserve = is_reserve_team(name)

    kept = []
    for index, token in enumerate(tokens):
        folded = token.casefold()
        if folded in CLUB_PREFIX_TOKENS or folded in RESERVE_TOKENS:
            continue
        if AGE_CATEGORY_RE.fullmatch(token):
            continue
        if _YEAR_TOKEN_RE.match(token) and token not in NAME_YEARS:
            continue
        if _ORDINAL_TOKEN_RE.match(token):
            continue
        if reserve and index == len(tokens) - 1 and token in ("2", "2."):
            continue
        kept.append(token)

    cleaned = " ".join(kept) or " ".join(tokens)
    if reserve:
        cleaned = f"{cleaned} {RESERVE_SUFFIX}"
    return cleaned


def match_type(competition: Optional[str]) -> MatchType:
    """Classify a competition label as cup, friendly or league."""
    if not competition:
        return MatchType.league
    lowered = competition.casefold()
    if any(keyword in lowered for keyword in CUP_KEYWORDS):
        return MatchType.cup
    if any(keyword in lowered for keyword in FRIENDLY_KEYWORDS):
        return MatchType.friendly
    return MatchType.league


def league_shorthand(label: Optional[str]) -> Optional[str]:
    """Shorthand for a senior league label ("Regionalliga Südwest" -> "RL")."""
    if not label:
        return None
    lowered = label.casefold()
    for needle, shorthand in LEAGUE_SHORTHANDS:
        if needle in lowered:
            return shorthand
    return None
