"""
Tests for the YAML match store.
"""
import os
import pytest
import sys
import yaml

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from core.errors import (
    MatchNotFoundError,
    PlayerNotFoundError,
    StoreError,
    TournamentNotFoundError,
    ValidationError,
    VersionConflictError,
)
from core.models import Matchup, Player, Tournament
from core.storage import MatchStore, validate_tournament_id


def two_matches(tournament_id=1):
    return [
        Matchup(tournament_id, 1, 1, [Player('a', 'A'), Player('b', 'B')]),
        Matchup(tournament_id, 1, 2, [Player('c', 'C'), Player('d', 'D')]),
    ]


class TestTournaments:
    """Tests for creating and loading tournaments."""

    def test_create_and_get(self, store, single_tournament):
        loaded = store.get_tournament(1)
        assert loaded.name == 'Spring Open'
        assert [f.name for f in loaded.skill_fields] == ['skill1', 'skill2']
        assert os.path.exists(os.path.join(store.data_dir, 'tournaments', '1.yaml'))

    def test_file_is_yaml(self, store, single_tournament):
        with open(os.path.join(store.tournaments_dir, '1.yaml'), 'r') as f:
            data = yaml.safe_load(f)
        assert data['tournament']['tournament_type'] == 'single'
        assert data['matches'] == []

    def test_duplicate_create(self, store, single_tournament):
        with pytest.raises(StoreError):
            store.create_tournament(Tournament(id=1))

    def test_missing_tournament(self, store):
        with pytest.raises(TournamentNotFoundError):
            store.get_tournament('nope')

    @pytest.mark.parametrize('bad_id', ['../escaped', 'a/b', '', 'x y', 'name\n'])
    def test_rejects_unsafe_ids(self, store, tmp_path, bad_id):
        with pytest.raises(ValidationError):
            store.create_tournament(Tournament(id=bad_id))
        assert not (tmp_path / 'escaped.yaml').exists()

    def test_accepts_plain_ids(self):
        assert validate_tournament_id('spring-open_2') == 'spring-open_2'
        assert validate_tournament_id(7) == '7'

    def test_corrupt_file(self, store):
        os.makedirs(store.tournaments_dir, exist_ok=True)
        with open(os.path.join(store.tournaments_dir, 'bad.yaml'), 'w') as f:
            f.write('just a string\n')
        with pytest.raises(StoreError):
            store.get_tournament('bad')


class TestRoster:
    """Tests for roster records."""

    def test_add_and_list(self, store, single_tournament):
        store.add_player(1, {'uuid': 'a', 'name': 'A'}, 'active')
        store.add_player(1, {'uuid': 'b', 'name': 'B'})
        assert [p['uuid'] for p in store.list_players(1)] == ['a', 'b']
        assert [p['uuid'] for p in store.list_players(1, 'active')] == ['a']
        assert [p['uuid'] for p in store.list_players(1, 'waitlist')] == ['b']

    def test_duplicate_player(self, store, single_tournament):
        store.add_player(1, {'uuid': 'a', 'name': 'A'})
        with pytest.raises(StoreError):
            store.add_player(1, {'uuid': 'a', 'name': 'A again'})

    def test_player_needs_uuid(self, store, single_tournament):
        with pytest.raises(ValueError):
            store.add_player(1, {'name': 'Nobody'})

    def test_unknown_status(self, store, single_tournament):
        with pytest.raises(ValueError):
            store.add_player(1, {'uuid': 'a', 'name': 'A'}, 'banned')

    def test_set_status(self, store, single_tournament):
        store.add_player(1, {'uuid': 'a', 'name': 'A'})
        store.set_player_status(1, 'a', 'active')
        assert store.list_players(1)[0]['status'] == 'active'

    def test_set_status_unknown_player(self, store, single_tournament):
        with pytest.raises(PlayerNotFoundError):
            store.set_player_status(1, 'ghost', 'active')


class TestMatches:
    """Tests for match rows and version checks."""

    def test_insert_assigns_ids_and_version(self, store, single_tournament):
        inserted = store.insert_matches(1, two_matches())
        assert [m.id for m in inserted] == [1, 2]
        assert all(m.version == 1 for m in inserted)

        more = store.insert_matches(1, [Matchup(1, 2, 1)])
        assert more[0].id == 3

    def test_round_trip(self, store, single_tournament):
        store.insert_matches(1, two_matches())
        match = store.get_match(1, 1, 2)
        assert match.player_ids == ['c', 'd']
        assert match.version == 1
        assert store.get_match(1, 3, 1) is None
        assert len(store.list_matches(1)) == 2

    def test_duplicate_key_rejected_atomically(self, store, single_tournament):
        store.insert_matches(1, two_matches()[:1])
        with pytest.raises(StoreError):
            store.insert_matches(1, [Matchup(1, 2, 1), Matchup(1, 1, 1)])
        assert len(store.list_matches(1)) == 1

    def test_update_bumps_version(self, store, single_tournament):
        store.insert_matches(1, two_matches())
        match = store.get_match(1, 1, 1)
        match.record_result('a')
        store.update_match(match)
        assert match.version == 2

        stored = store.get_match(1, 1, 1)
        assert stored.winner == 'a'
        assert stored.version == 2

    def test_stale_update_conflicts(self, store, single_tournament):
        store.insert_matches(1, two_matches())
        first = store.get_match(1, 1, 1)
        second = store.get_match(1, 1, 1)

        first.record_result('a')
        store.update_match(first)

        second.record_result('b')
        with pytest.raises(VersionConflictError) as exc_info:
            store.update_match(second)
        assert exc_info.value.expected == 1
        assert exc_info.value.actual == 2
        assert store.get_match(1, 1, 1).winner == 'a'

    def test_update_many_is_all_or_nothing(self, store, single_tournament):
        store.insert_matches(1, two_matches())
        first = store.get_match(1, 1, 1)
        second = store.get_match(1, 1, 2)
        stale = store.get_match(1, 1, 2)
        stale.record_result('c')
        store.update_match(stale)

        first.record_result('a')
        second.record_result('d')
        with pytest.raises(VersionConflictError):
            store.update_matches(1, [first, second])
        assert store.get_match(1, 1, 1).winner is None
        assert first.version == 1

    def test_update_missing_match(self, store, single_tournament):
        with pytest.raises(MatchNotFoundError):
            store.update_match(Matchup(1, 4, 4, version=1))

    def test_lock_timeout_is_store_error(self, store, single_tournament):
        from filelock import FileLock
        blocker = FileLock(os.path.join(store.tournaments_dir, '1.yaml.lock'))
        impatient = MatchStore(store.data_dir, lock_timeout=0.05)
        with blocker:
            with pytest.raises(StoreError):
                impatient.get_tournament(1)


class TestSaveMatches:
    """Tests for combined writes."""

    def test_update_insert_and_status_together(self, store, single_tournament):
        store.add_player(1, {'uuid': 'e', 'name': 'E'})
        store.insert_matches(1, two_matches())
        source = store.get_match(1, 1, 1)
        source.players[1] = Player('e', 'E')

        store.save_matches(1, updated=[source], inserted=[Matchup(1, 2, 1, [Player('b', 'B')])],
                           player_statuses={'e': 'active'})
        assert store.get_match(1, 1, 1).player_ids == ['a', 'e']
        assert store.get_match(1, 2, 1).id == 3
        assert store.list_players(1, 'active')[0]['uuid'] == 'e'

    def test_taken_insert_writes_nothing(self, store, single_tournament):
        store.insert_matches(1, two_matches())
        source = store.get_match(1, 1, 1)
        source.record_result('a')
        with pytest.raises(StoreError):
            store.save_matches(1, updated=[source], inserted=[Matchup(1, 1, 2)])
        assert store.get_match(1, 1, 1).winner is None
        assert source.version == 1

    def test_unknown_player_writes_nothing(self, store, single_tournament):
        store.insert_matches(1, two_matches())
        with pytest.raises(PlayerNotFoundError):
            store.save_matches(1, inserted=[Matchup(1, 2, 1)], player_statuses={'ghost': 'active'})
        assert store.get_match(1, 2, 1) is None

    def test_unknown_status(self, store, single_tournament):
        with pytest.raises(ValueError):
            store.save_matches(1, player_statuses={'a': 'retired'})
