"""
Single elimination bracket generation, advancement and reassembly.
"""
import logging
import math
from itertools import groupby
from typing import List, Dict, Optional

from .errors import MatchNotFoundError
from .models import Bracket, Decisive, Matchup, Player, Round

logger = logging.getLogger(__name__)


def get_round_name(teams_in_round: int) -> str:
    """Get the name of a round based on number of teams."""
    if teams_in_round == 2:
        return "Final"
    elif teams_in_round == 4:
        return "Semifinal"
    elif teams_in_round == 8:
        return "Quarterfinal"
    else:
        return f"Round of {teams_in_round}"


def total_rounds(first_round_matches: int) -> int:
    """Number of rounds implied by the first round: ceil(log2(matches)) + 1."""
    if first_round_matches <= 0:
        return 0
    return math.ceil(math.log2(first_round_matches)) + 1


def pad_to_even(players: List[Player]) -> List[Player]:
    """Append a BYE when the player count is odd."""
    padded = list(players)
    if len(padded) % 2 != 0:
        padded.append(Player.bye())
    return padded


def _automatic_result(players: List[Player]):
    """A match against an empty slot is decided for the real player."""
    real = [p for p in players if not p.is_placeholder]
    if len(real) == 1:
        return Decisive(real[0].uuid, '')
    return None


class SingleEliminationBracket:
    """
    In-memory single elimination state.

    Usage:
        bracket = SingleEliminationBracket(tournament_id=7)
        bracket.generate_bracket(seed_players(players))
        bracket.enter_result(match_id, winner_uuid)
        new_round = bracket.next_round()   # [] once the tournament is decided
    """

    def __init__(self, tournament_id=None, matches: Optional[List[Matchup]] = None):
        self.tournament_id = tournament_id
        self.matches = list(matches) if matches else []
        self._next_id = max((m.id for m in self.matches), default=0) + 1

    def _add_match(self, round_number: int, match_number: int, players: List[Player]) -> Matchup:
        match = Matchup(
            tournament_id=self.tournament_id,
            round=round_number,
            match_number=match_number,
            players=players,
            result=_automatic_result(players),
            id=self._next_id,
        )
        self._next_id += 1
        self.matches.append(match)
        return match

    @property
    def current_round(self) -> int:
        return max((m.round for m in self.matches), default=0)

    def round_matches(self, round_number: int) -> List[Matchup]:
        return sorted((m for m in self.matches if m.round == round_number), key=lambda m: m.match_number)

    def undecided_matches(self, round_number: Optional[int] = None) -> List[Matchup]:
        """Matches with players but no result, in one round or the whole bracket."""
        matches = self.matches if round_number is None else self.round_matches(round_number)
        return [m for m in matches if not m.is_complete and not m.is_placeholder]

    def get_match(self, match_id) -> Optional[Matchup]:
        return next((m for m in self.matches if m.id == match_id), None)

    def find_match(self, round_number: int, match_number: int) -> Optional[Matchup]:
        return next((m for m in self.matches if m.key == (round_number, match_number)), None)

    def generate_bracket(self, sorted_players: List[Player]) -> List[Matchup]:
        """
        Pair consecutive players (0 vs 1, 2 vs 3, ...) into round 1.

        Odd counts are not given a bye here; pad with ``pad_to_even`` first.
        Returns the new matches, or an empty list when nothing was generated.
        """
        if self.matches:
            logger.warning(f"Bracket for tournament {self.tournament_id} already has matches")
            return []
        if len(sorted_players) < 2:
            return []
        if len(sorted_players) % 2 != 0:
            logger.warning(f"Cannot pair an odd number of players ({len(sorted_players)}) without padding")
            return []

        created = []
        for i in range(0, len(sorted_players), 2):
            created.append(self._add_match(1, i // 2 + 1, [sorted_players[i], sorted_players[i + 1]]))
        return created

    def enter_result(self, match_id, winner_id) -> bool:
        """
        Record the winner of a match.

        A match that already has a result is left untouched and False is
        returned, so a repeated submission is harmless.
        """
        match = self.get_match(match_id)
        if match is None:
            raise MatchNotFoundError(f"Match {match_id} not found")
        return match.record_result(winner_id)

    def next_round(self) -> List[Matchup]:
        """
        Pair the winners of the latest round into a new round.

        Returns an empty list, without touching the bracket, while the latest
        round still has undecided matches or when fewer than two winners are
        available: the tournament is decided.
        """
        if not self.matches:
            return []
        latest = self.current_round
        if self.undecided_matches(latest):
            logger.warning(f"Round {latest} of tournament {self.tournament_id} is not finished")
            return []
        winners = []
        for match in self.round_matches(latest):
            if match.winner:
                winners.append(match.players[match.slot_of(match.winner)])
        if len(winners) < 2:
            return []

        created = []
        for i in range(0, len(winners), 2):
            # A trailing winner gets an automatic pass with only player 1 set
            created.append(self._add_match(latest + 1, i // 2 + 1, winners[i:i + 2]))
        return created

    def is_eliminated(self, player_id) -> bool:
        if not player_id:
            return False
        return any(m.loser == player_id for m in self.matches)

    def champion(self) -> Optional[str]:
        """Winner of the final, or None while any match is still undecided."""
        if not self.matches or self.undecided_matches():
            return None
        final = self.round_matches(self.current_round)
        if len(final) == 1 and final[0].winner:
            return final[0].winner
        return None


def assemble_bracket(rows: List, tournament_type: str = 'single') -> Bracket:
    """
    Rebuild the round structure from persisted match rows.

    Rows are grouped by round and ordered by match number. For single
    elimination every round ``r`` is padded with empty placeholder matches up to
    ``2 ** (total_rounds - r)`` matches, so rounds that have not been played yet
    still have their full shape.
    """
    matches = [row if isinstance(row, Matchup) else Matchup.from_dict(row) for row in rows]
    matches.sort(key=lambda m: (m.round, m.match_number))

    matches_by_round: Dict[int, List[Matchup]] = {}
    for round_number, round_matches in groupby(matches, key=lambda m: m.round):
        matches_by_round[round_number] = list(round_matches)

    if tournament_type == 'single':
        tournament_id = matches[0].tournament_id if matches else None
        rounds_needed = total_rounds(len(matches_by_round.get(1, [])))
        for round_number in range(1, rounds_needed + 1):
            round_matches = matches_by_round.setdefault(round_number, [])
            expected = 2 ** (rounds_needed - round_number)
            next_number = max((m.match_number for m in round_matches), default=0) + 1
            while len(round_matches) < expected:
                round_matches.append(Matchup(tournament_id, round_number, next_number))
                next_number += 1

    return Bracket([Round(matches_by_round[r]) for r in sorted(matches_by_round)])


def get_elimination_bracket_display(bracket: Bracket) -> Dict:
    """
    Get bracket data formatted for display.
    """
    rounds = []
    for round_ in bracket.rounds:
        rounds.append({
            'name': get_round_name(len(round_.matches) * 2),
            'matches': [m.to_dict() for m in round_.matches],
        })

    matches_per_round = {}
    for round_ in rounds:
        played = [m for m in round_['matches'] if m['id'] != -1]
        matches_per_round[round_['name']] = len(played)

    champion = None
    if bracket.rounds and len(bracket.rounds[-1].matches) == 1:
        champion = bracket.rounds[-1].matches[0].winner

    return {
        'rounds': rounds,
        'total_rounds': len(bracket.rounds),
        'matches_per_round': matches_per_round,
        'champion': champion,
    }
