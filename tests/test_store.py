"""
Tests for the SQLite fixture store, subject and settings repositories.
"""

from datetime import date

from spielplan_sync.core.types import API_TOKEN_SETTINGS_KEY, UpsertOutcome
from spielplan_sync.schema import get_schema_version, get_table_counts, init_database, list_tables


# =========================================================================
# Schema
# =========================================================================


class TestSchema:

    def test_tables_created(self, db):
        assert {"meta", "settings", "subjects", "fixtures"} <= set(list_tables(db))

    def test_init_is_repeatable(self, db):
        assert init_database(db) == 0
        assert get_schema_version(db) == "1"

    def test_table_counts(self, db, make_subject):
        make_subject("s1", "Anna Alpha", team_id="AAA")
        counts = get_table_counts(db)
        assert counts["subjects"] == 1
        assert counts["fixtures"] == 0

    def test_meta_roundtrip(self, db):
        db.set_meta("last_full_sync", "2025-10-20T08:00:00")
        db.set_meta("last_full_sync", "2025-10-21T08:00:00")
        assert db.get_meta("last_full_sync") == "2025-10-21T08:00:00"


# =========================================================================
# Fixture store
# =========================================================================


class TestFixtureUpsert:

    def test_first_write_adds(self, fixture_repo, make_fixture):
        assert fixture_repo.upsert(make_fixture()) is UpsertOutcome.added
        assert fixture_repo.count() == 1

    def test_same_list_twice_is_idempotent(self, fixture_repo, make_fixture):
        fixtures = [
            make_fixture(time="11:00", location="Dietmar-Hopp-Stadion"),
            make_fixture(date="2025-11-01", home_team="VfB Stuttgart U17", away_team="TSG 1899 Hoffenheim U17"),
        ]
        first = [fixture_repo.upsert(f) for f in fixtures]
        rows_after_first = fixture_repo.find_in_range(date(2025, 10, 1), date(2025, 11, 30))

        second = [fixture_repo.upsert(f) for f in fixtures]
        rows_after_second = fixture_repo.find_in_range(date(2025, 10, 1), date(2025, 11, 30))

        assert first == [UpsertOutcome.added, UpsertOutcome.added]
        assert second == [UpsertOutcome.updated, UpsertOutcome.updated]
        assert fixture_repo.count() == 2
        assert [r.model_dump() for r in rows_after_first] == [r.model_dump() for r in rows_after_second]

    def test_update_refreshes_details_but_keeps_id_and_selection(self, fixture_repo, make_fixture):
        fixture_repo.upsert(make_fixture())
        original = fixture_repo.find_by_key("s1", "2025-10-25", "TSG 1899 Hoffenheim U17", "FC Bayern München U17 2")
        fixture_repo.set_selected([original.id])

        fixture_repo.upsert(make_fixture(time="13:00", result="2:1", selected=False))
        updated = fixture_repo.find_by_key("s1", "2025-10-25", "TSG 1899 Hoffenheim U17", "FC Bayern München U17 2")

        assert updated.id == original.id
        assert updated.time == "13:00"
        assert updated.result == "2:1"
        assert updated.selected is True

    def test_same_match_for_two_subjects_is_two_rows(self, fixture_repo, make_fixture):
        fixture_repo.upsert(make_fixture(subject_id="s1", subject_name="Anna Alpha"))
        fixture_repo.upsert(make_fixture(subject_id="s2", subject_name="Ben Beta"))
        assert fixture_repo.count() == 2

    def test_find_by_key_missing(self, fixture_repo):
        assert fixture_repo.find_by_key("s1", "2025-10-25", "A", "B") is None


class TestFixtureQueries:

    def test_find_in_range_is_inclusive_and_ordered(self, fixture_repo, make_fixture):
        fixture_repo.upsert(make_fixture(date="2025-10-31", home_team="C", away_team="D"))
        fixture_repo.upsert(make_fixture(date="2025-10-25", home_team="A", away_team="B", time="15:00"))
        fixture_repo.upsert(make_fixture(date="2025-11-30", home_team="E", away_team="F"))
        fixture_repo.upsert(make_fixture(date="2025-12-01", home_team="G", away_team="H"))

        rows = fixture_repo.find_in_range(date(2025, 10, 25), date(2025, 11, 30))

        assert [r.home_team for r in rows] == ["A", "C", "E"]

    def test_selection(self, fixture_repo, make_fixture):
        fixture_repo.upsert(make_fixture(home_team="A", away_team="B"))
        fixture_repo.upsert(make_fixture(home_team="C", away_team="D"))
        rows = fixture_repo.find_in_range(date(2025, 10, 1), date(2025, 10, 31))

        assert fixture_repo.set_selected([rows[0].id]) == 1
        assert [r.selected for r in fixture_repo.find_by_ids([r.id for r in rows])].count(True) == 1
        assert fixture_repo.set_selected([]) == 0
        assert fixture_repo.clear_selection() == 1

    def test_delete_before(self, fixture_repo, make_fixture):
        fixture_repo.upsert(make_fixture(date="2025-10-18", home_team="A", away_team="B"))
        fixture_repo.upsert(make_fixture(date="2025-10-19", home_team="C", away_team="D"))
        fixture_repo.upsert(make_fixture(date="2025-10-20", home_team="E", away_team="F"))

        assert fixture_repo.delete_before(date(2025, 10, 19)) == 1
        assert fixture_repo.count() == 2

    def test_find_by_ids_empty(self, fixture_repo):
        assert fixture_repo.find_by_ids([]) == []


# =========================================================================
# Subjects and settings
# =========================================================================


class TestSubjects:

    def test_find_with_profile_skips_missing_urls(self, subject_repo, make_subject):
        make_subject("s1", "Anna Alpha", team_id="AAA")
        make_subject("s2", "Ben Beta")
        make_subject("s3", "Cem Gamma", profile_url="   ")

        assert [s.id for s in subject_repo.find_with_profile()] == ["s1"]
        assert len(subject_repo.find_all()) == 3

    def test_upsert_updates(self, subject_repo, make_subject):
        make_subject("s1", "Anna Alpha", league="U17 Bundesliga")
        make_subject("s1", "Anna Alpha", league="U19 Bundesliga")
        assert subject_repo.find_by_id("s1").league == "U19 Bundesliga"
        assert subject_repo.find_by_id("missing") is None


class TestSettings:

    def test_token_roundtrip(self, settings_repo):
        assert settings_repo.get(API_TOKEN_SETTINGS_KEY) is None
        settings_repo.set(API_TOKEN_SETTINGS_KEY, "abc")
        settings_repo.set(API_TOKEN_SETTINGS_KEY, "def")
        assert settings_repo.get(API_TOKEN_SETTINGS_KEY) == "def"
        settings_repo.delete(API_TOKEN_SETTINGS_KEY)
        assert settings_repo.get(API_TOKEN_SETTINGS_KEY) is None

    def test_empty_value_counts_as_missing(self, settings_repo):
        settings_repo.set(API_TOKEN_SETTINGS_KEY, "")
        assert settings_repo.get(API_TOKEN_SETTINGS_KEY) is None
