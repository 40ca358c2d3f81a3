"""
Tests for the command-line interface.

Commands run against a temporary database file configured through the
environment; sync is not exercised here (see test_sync.py).
"""

from datetime import date, timedelta

import pytest

from spielplan_sync import cli
from spielplan_sync.connection import FixtureDB
from spielplan_sync.core.config import get_settings
from spielplan_sync.core.models import Fixture
from spielplan_sync.core.types import API_TOKEN_SETTINGS_KEY
from spielplan_sync.repositories import get_repositories
from spielplan_sync.schema import init_database


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    path = tmp_path / "spielplan.sqlite"
    monkeypatch.setenv("DATABASE_PATH", str(path))
    get_settings.cache_clear()
    yield path
    get_settings.cache_clear()


def run(monkeypatch, *argv) -> int:
    monkeypatch.setattr("sys.argv", ["spielplan", *argv])
    return cli.main()


def open_repos(path):
    db = FixtureDB(path)
    return db, get_repositories(db)


def test_init_and_status(db_path, monkeypatch, capsys):
    assert run(monkeypatch, "init") == 0
    assert db_path.exists()

    assert run(monkeypatch, "status") == 0
    out = capsys.readouterr().out
    assert "Schema Version: 1" in out
    assert "API Token: missing" in out


def test_token_set_and_show(db_path, monkeypatch, capsys):
    assert run(monkeypatch, "token", "show") == 1

    assert run(monkeypatch, "token", "set", "abcdefghijkl") == 0
    assert run(monkeypatch, "token", "show") == 0
    assert "abcd****ijkl" in capsys.readouterr().out

    db, (_, _, settings_repo) = open_repos(db_path)
    assert settings_repo.get(API_TOKEN_SETTINGS_KEY) == "abcdefghijkl"
    db.close()


def test_subjects_add_and_list(db_path, monkeypatch, capsys):
    assert run(
        monkeypatch, "subjects", "add", "--id", "a", "--name", "Anna Alpha",
        "--url", "https://www.fussball.de/mannschaft/x/-/team-id/ABC123", "--league", "U17 Bundesliga",
    ) == 0
    assert run(monkeypatch, "subjects", "list") == 0
    out = capsys.readouterr().out
    assert "Anna Alpha" in out
    assert "U17 Bundesliga" in out


def test_sync_without_token_reports_configuration(db_path, monkeypatch, capsys):
    assert run(monkeypatch, "sync") == 2
    assert "token" in capsys.readouterr().out.lower()


def test_select_export_and_cleanup(db_path, monkeypatch, capsys, tmp_path):
    upcoming = (date.today() + timedelta(days=3)).isoformat()
    past = (date.today() - timedelta(days=3)).isoformat()
    db, (_, fixtures, _) = open_repos(db_path)
    init_database(db)
    for day, home in [(upcoming, "TSG 1899 Hoffenheim U17"), (past, "Old")]:
        fixtures.upsert(
            Fixture(subject_id="a", subject_name="Anna Alpha", date=day,
                    home_team=home, away_team="FC Bayern München U17 2")
        )
    db.close()

    output = tmp_path / "out.ics"
    assert run(monkeypatch, "export", "--output", str(output)) == 1
    assert "No fixtures selected" in capsys.readouterr().out
    assert not output.exists()

    assert run(monkeypatch, "list") == 0
    listing = capsys.readouterr().out
    key = next(line.split("]", 1)[1].split()[0] for line in listing.splitlines() if "Hoffenheim" in line)

    assert run(monkeypatch, "select", key) == 0
    assert run(monkeypatch, "export", "--output", str(output)) == 0
    assert "SUMMARY:U17 Liga: Hoffenheim - Bayern München U23" in output.read_text(encoding="utf-8")

    assert run(monkeypatch, "cleanup") == 0
    assert "Deleted 1 past fixtures" in capsys.readouterr().out


def test_list_labels_senior_matches(db_path, monkeypatch, capsys):
    upcoming = (date.today() + timedelta(days=2)).isoformat()
    db, (_, fixtures, _) = open_repos(db_path)
    init_database(db)
    fixtures.upsert(
        Fixture(subject_id="a", subject_name="Anna Alpha", date=upcoming, time="15:30",
                home_team="SV Waldhof Mannheim", away_team="Karlsruher SC II")
    )
    fixtures.upsert(
        Fixture(subject_id="b", subject_name="Ben Beta", date=upcoming, time="11:00",
                home_team="TSG 1899 Hoffenheim U17", away_team="VfB Stuttgart U17")
    )
    db.close()

    assert run(monkeypatch, "list") == 0
    lines = capsys.readouterr().out.splitlines()

    assert any("Senior" in line and "Waldhof" in line for line in lines)
    assert any("U17" in line and "Hoffenheim" in line for line in lines)
