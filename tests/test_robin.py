"""
Unit tests for round-robin scheduling and standings.
"""
import pytest
import sys
import os
from itertools import combinations

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from core.models import Bracket, Matchup, Player, Round
from core.elimination import assemble_bracket
from core.robin import generate_round_robin_matchups, rank_round_robin_players, WIN_POINTS, TIE_POINTS
from conftest import make_player


def pair_set(matches):
    return {frozenset(m.player_ids) for m in matches}


def play(matches, winners):
    """Record results keyed by frozenset of the two player uuids; None means a tie."""
    for match in matches:
        outcome = winners[frozenset(match.player_ids)]
        if outcome is None:
            match.record_result(tie=True)
        else:
            match.record_result(outcome)
    return assemble_bracket(matches, 'robin')


class TestGenerateRoundRobin:
    """Tests for the circle-method schedule."""

    def test_four_players(self, sample_players):
        matches = generate_round_robin_matchups(sample_players, tournament_id=9)
        assert len(matches) == 6
        assert sorted({m.round for m in matches}) == [1, 2, 3]
        for round_number in (1, 2, 3):
            assert len([m for m in matches if m.round == round_number]) == 2
        assert pair_set(matches) == {frozenset(p) for p in combinations('abcd', 2)}
        assert all(m.tournament_id == 9 for m in matches)

    def test_top_seed_fixed_and_rotation(self, sample_players):
        matches = generate_round_robin_matchups(sample_players)
        rounds = [[[p.uuid for p in m.players] for m in matches if m.round == r] for r in (1, 2, 3)]
        assert rounds == [
            [['d', 'a'], ['b', 'c']],
            [['d', 'c'], ['a', 'b']],
            [['d', 'b'], ['c', 'a']],
        ]

    def test_match_numbers_run_across_rounds(self, sample_players):
        matches = generate_round_robin_matchups(sample_players)
        assert [m.match_number for m in matches] == [1, 2, 3, 4, 5, 6]

    def test_three_players_one_match_per_round(self):
        players = [make_player('a', 3), make_player('b', 2), make_player('c', 1)]
        matches = generate_round_robin_matchups(players)
        assert [m.round for m in matches] == [1, 2, 3]
        assert pair_set(matches) == {frozenset(p) for p in combinations('abc', 2)}
        assert not any(p.is_bye for m in matches for p in m.players)

    @pytest.mark.parametrize('count', [2, 5, 6, 7, 8])
    def test_every_pair_meets_once(self, count):
        players = [make_player(f'p{i}', count - i) for i in range(count)]
        matches = generate_round_robin_matchups(players)
        expected = {frozenset(p) for p in combinations([p.uuid for p in players], 2)}
        assert len(matches) == len(expected)
        assert pair_set(matches) == expected

    @pytest.mark.parametrize('count', [4, 5, 6, 7])
    def test_nobody_plays_twice_in_a_round(self, count):
        players = [make_player(f'p{i}', count - i) for i in range(count)]
        matches = generate_round_robin_matchups(players)
        for round_number in {m.round for m in matches}:
            ids = [uuid for m in matches if m.round == round_number for uuid in m.player_ids]
            assert len(ids) == len(set(ids))

    def test_too_few_players(self):
        assert generate_round_robin_matchups([]) == []
        assert generate_round_robin_matchups([make_player('a', 1)]) == []


class TestRankRoundRobin:
    """Tests for round-robin standings."""

    def test_sorted_by_wins(self, sample_players):
        matches = generate_round_robin_matchups(sample_players)
        results = {
            frozenset('da'): 'd', frozenset('bc'): 'b', frozenset('dc'): 'd',
            frozenset('ab'): 'b', frozenset('db'): 'd', frozenset('ca'): 'c',
        }
        ranked = rank_round_robin_players(play(matches, results))
        assert [p.player.uuid for p in ranked] == ['d', 'b', 'c', 'a']
        assert [len(p.wins) for p in ranked] == [3, 2, 1, 0]
        assert ranked[0].score == 3 * WIN_POINTS

    def test_strength_breaks_equal_records(self, sample_players):
        """b and d are both 2-1; b beat the stronger opponents."""
        matches = generate_round_robin_matchups(sample_players)
        results = {
            frozenset('da'): 'd', frozenset('bc'): 'c', frozenset('dc'): 'd',
            frozenset('ab'): 'b', frozenset('db'): 'b', frozenset('ca'): 'a',
        }
        ranked = rank_round_robin_players(play(matches, results))
        assert [p.player.uuid for p in ranked] == ['b', 'd', 'c', 'a']

    def test_ties_counted(self, sample_players):
        matches = generate_round_robin_matchups(sample_players)
        results = {
            frozenset('da'): None, frozenset('bc'): 'b', frozenset('dc'): 'd',
            frozenset('ab'): 'b', frozenset('db'): 'd', frozenset('ca'): 'c',
        }
        ranked = {p.player.uuid: p for p in rank_round_robin_players(play(matches, results))}
        assert len(ranked['d'].ties) == 1
        assert len(ranked['a'].ties) == 1
        assert ranked['d'].score == 2 * WIN_POINTS + TIE_POINTS
        assert ranked['a'].to_dict()['ties'] == 1

    def test_unplayed_matches_count_nothing(self, sample_players):
        ranked = rank_round_robin_players(assemble_bracket(generate_round_robin_matchups(sample_players), 'robin'))
        assert len(ranked) == 4
        assert all(p.score == 0 for p in ranked)

    def test_bye_match(self):
        bracket = Bracket([Round([Matchup(1, 1, 1, [Player('a', 'A'), Player.bye()])])])
        ranked = rank_round_robin_players(bracket)
        assert len(ranked) == 1
        assert ranked[0].byes == 1
        assert ranked[0].wins == []
