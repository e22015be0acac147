"""
Round-robin scheduling (circle method) and standings.
"""
from typing import List, Dict

from .models import Bracket, Matchup, Player, Tie
from .seeding import seed_players

WIN_POINTS = 3
TIE_POINTS = 1


def generate_round_robin_matchups(players: List[Player], tournament_id=None) -> List[Matchup]:
    """
    Generate every round of a round-robin schedule.

    Players are seeded, then scheduled with the circle method: the top seed
    stays fixed while the others rotate one position per round. With an odd
    count a BYE is added and pairings against it are skipped, so every real
    pair meets exactly once over ``n - 1`` rounds.

    Match numbers increase across the whole schedule.
    """
    working = seed_players(players)
    if len(working) < 2:
        return []
    if len(working) % 2 != 0:
        working.append(Player.bye())

    num_players = len(working)
    num_rounds = num_players - 1
    half = num_players // 2

    fixed = working[0]
    rotating = working[1:]

    matchups = []
    match_number = 1
    for round_number in range(1, num_rounds + 1):
        round_players = [fixed] + rotating
        for i in range(half):
            p1 = round_players[i]
            p2 = round_players[num_players - 1 - i]
            if not p1.uuid or not p2.uuid:
                continue
            matchups.append(Matchup(
                tournament_id=tournament_id,
                round=round_number,
                match_number=match_number,
                players=[p1, p2],
            ))
            match_number += 1

        rotating.insert(0, rotating.pop())

    return matchups


class RoundRobinRankedPlayer:
    """Opponents beaten, lost to and tied with, plus byes, for one player."""

    def __init__(self, player: Player):
        self.player = player
        self.wins: List[Player] = []
        self.losses: List[Player] = []
        self.ties: List[Player] = []
        self.byes = 0

    @property
    def score(self) -> int:
        return len(self.wins) * WIN_POINTS + len(self.ties) * TIE_POINTS

    def to_dict(self) -> Dict:
        return {
            'player': self.player.to_dict(),
            'wins': len(self.wins),
            'losses': len(self.losses),
            'ties': len(self.ties),
            'byes': self.byes,
            'score': self.score,
        }

    def __repr__(self):
        return (f"RoundRobinRankedPlayer(player={self.player.name}, wins={len(self.wins)}, "
                f"losses={len(self.losses)}, ties={len(self.ties)}, byes={self.byes})")


def rank_round_robin_players(bracket: Bracket) -> List[RoundRobinRankedPlayer]:
    """
    Build standings from a round-robin bracket.

    Sort order: most wins, fewest losses, most ties, then strength of the
    opponents beaten (sum of their points, 3 per win and 1 per tie).
    """
    ranked: Dict[str, RoundRobinRankedPlayer] = {}

    for match in bracket.all_matches():
        real_players = [p for p in match.players if not p.is_placeholder]
        for player in real_players:
            entry = ranked.setdefault(player.uuid, RoundRobinRankedPlayer(player))
            opponents = [p for p in real_players if p.uuid != player.uuid]

            if not opponents:
                entry.byes += 1

            if match.winner:
                if match.winner == player.uuid:
                    entry.wins.extend(opponents)
                else:
                    entry.losses.extend(opponents)
            elif isinstance(match.result, Tie):
                entry.ties.extend(opponents)

    all_players = list(ranked.values())
    scores = {p.player.uuid: p.score for p in all_players}
    strength = {
        p.player.uuid: sum(scores.get(opponent.uuid, 0) for opponent in p.wins)
        for p in all_players
    }

    all_players.sort(key=lambda p: (
        -len(p.wins),
        len(p.losses),
        -len(p.ties),
        -strength[p.player.uuid],
    ))
    return all_players
