"""
Swiss-style pairing: first round from seeding, later rounds from standings.
"""
from typing import List, Dict, Tuple

from .models import Bracket, Decisive, Matchup, Player, Round, Tie
from .seeding import sort_players


def generate_swiss_matchups(players: List[Player], tournament_id=None, sorting_algo: str = 'ranked',
                            sorting_value: int = 2, rng=None) -> List[Matchup]:
    """
    Pair the first round of a Swiss tournament.

    Players are ordered with the chosen sort policy (see ``sort_players``) and
    paired 0 vs 1, 2 vs 3, ... A trailing odd player is paired against a
    flagged BYE, and that match is part of the result.
    """
    ordered = sort_players(players, sorting_algo, sorting_value, rng)
    matchups = []
    for i in range(0, len(ordered), 2):
        player1 = ordered[i]
        player2 = ordered[i + 1] if i + 1 < len(ordered) else Player.bye(flagged=True)
        matchups.append(Matchup(
            tournament_id=tournament_id,
            round=1,
            match_number=i // 2 + 1,
            players=[player1, player2],
        ))
    return matchups


def calculate_player_records(bracket: Bracket) -> Dict[str, Dict[str, int]]:
    """Wins, losses and ties per player uuid. Placeholders are not recorded."""
    records: Dict[str, Dict[str, int]] = {}

    def record(uuid) -> Dict[str, int]:
        return records.setdefault(uuid, {'wins': 0, 'losses': 0, 'ties': 0})

    for match in bracket.all_matches():
        if match.winner:
            record(match.winner)['wins'] += 1
            if match.loser:
                record(match.loser)['losses'] += 1
        elif isinstance(match.result, Tie):
            for uuid in match.player_ids:
                record(uuid)['ties'] += 1
    return records


def calculate_player_rankings(records: Dict[str, Dict[str, int]]) -> List[str]:
    """Uuids ordered by wins (desc), losses (asc), ties (desc)."""
    ordered = sorted(
        records.items(),
        key=lambda item: (-item[1]['wins'], item[1]['losses'], -item[1]['ties'])
    )
    return [uuid for uuid, _ in ordered]


def have_players_played_before(player1: str, player2: str, bracket: Bracket) -> bool:
    for match in bracket.all_matches():
        ids = match.player_ids
        if player1 in ids and player2 in ids:
            return True
    return False


def calculate_player_map(bracket: Bracket) -> Dict[str, Player]:
    player_map = {}
    for match in bracket.all_matches():
        for player in match.players:
            if not player.is_placeholder and player.uuid not in player_map:
                player_map[player.uuid] = player
    return player_map


def count_unfinished_matches(round_: Round) -> int:
    return sum(1 for match in round_.matches if not match.is_complete)


def close_round(round_: Round) -> List[Matchup]:
    """
    Mark every unfinished match of a round as a tie. A match against a BYE
    goes to the real player instead.

    Returns the matches that changed, for the caller to persist.
    """
    changed = []
    for match in round_.matches:
        if match.is_complete or not match.player_ids:
            continue
        if len(match.player_ids) == 1:
            match.result = Decisive(match.player_ids[0], '')
        else:
            match.result = Tie(match.player_ids)
        changed.append(match)
    return changed


def generate_next_round_pairings(bracket: Bracket, tournament_id=None) -> List[Matchup]:
    """
    Pair the next Swiss round from the current standings.

    Walks the ranking top-down; each player takes the highest-ranked remaining
    player they have not met yet, or simply the next one when everybody left is
    a rematch. A leftover player gets a BYE match already decided in their
    favour.

    Players without a finished match yet count as 0-0-0.
    """
    records = calculate_player_records(bracket)
    player_map = calculate_player_map(bracket)
    for uuid in player_map:
        records.setdefault(uuid, {'wins': 0, 'losses': 0, 'ties': 0})
    available = [uuid for uuid in calculate_player_rankings(records) if uuid in player_map]

    next_round = len(bracket.rounds) + 1
    pairings = []

    while len(available) > 1:
        player1 = available.pop(0)
        opponent_index = next(
            (i for i, player2 in enumerate(available)
             if not have_players_played_before(player1, player2, bracket)),
            0
        )
        opponent = available.pop(opponent_index)
        pairings.append(Matchup(
            tournament_id=tournament_id,
            round=next_round,
            match_number=len(pairings) + 1,
            players=[player_map[player1], player_map[opponent]],
        ))

    if len(available) == 1:
        bye_player = available[0]
        pairings.append(Matchup(
            tournament_id=tournament_id,
            round=next_round,
            match_number=len(pairings) + 1,
            players=[player_map[bye_player], Player.bye(flagged=True)],
            result=Decisive(bye_player, ''),
        ))

    return pairings


def swiss_standings(bracket: Bracket) -> List[Tuple[Player, Dict[str, int]]]:
    """Players with their records, best first."""
    records = calculate_player_records(bracket)
    player_map = calculate_player_map(bracket)
    for uuid in player_map:
        records.setdefault(uuid, {'wins': 0, 'losses': 0, 'ties': 0})
    return [(player_map[uuid], records[uuid]) for uuid in calculate_player_rankings(records)
            if uuid in player_map]
