"""
Roster mutations on persisted matches: waitlist promotion and move/swap.

Both operations read match rows, change them and write them back. The store
rejects the write if a row changed in between (version check), which is
reported as a 409 instead of silently overwriting the other change.
"""
import logging
from typing import Optional

from .errors import NotFoundError, StoreError, VersionConflictError
from .models import Matchup, Player

logger = logging.getLogger(__name__)

MATCH_SLOTS = 2


class MutationResult:
    def __init__(self, success: bool, error_code: Optional[int] = None):
        self.success = success
        self.error_code = error_code

    def to_dict(self):
        return {'success': self.success, 'errorCode': self.error_code}

    def __eq__(self, other):
        return (isinstance(other, MutationResult)
                and (self.success, self.error_code) == (other.success, other.error_code))

    def __repr__(self):
        return f"MutationResult(success={self.success}, error_code={self.error_code})"


class MovingPlayer:
    """A player picked up from a slot of a persisted match."""

    def __init__(self, player: Player, from_round: int, from_match: int, from_index: int):
        self.player = player
        self.from_round = from_round
        self.from_match = from_match
        self.from_index = from_index

    def __repr__(self):
        return (f"MovingPlayer(player={self.player.name}, from_round={self.from_round}, "
                f"from_match={self.from_match}, from_index={self.from_index})")


def _failure(e: Exception) -> MutationResult:
    if isinstance(e, VersionConflictError):
        logger.warning(f'Roster change lost a race: {e}')
        return MutationResult(False, 409)
    if isinstance(e, NotFoundError):
        logger.info(f'Roster change target missing: {e}')
        return MutationResult(False, 404)
    logger.error(f'Roster change failed: {e}')
    return MutationResult(False, 500)


def add_player_to_matchup_from_waitlist(store, tournament_id, match_number: int, round_number: int,
                                        player: Player, index: int) -> MutationResult:
    """
    Place a waitlisted player into slot ``index`` of a match and activate them.

    The match row is created when it does not exist yet. The slot and the
    roster status are written together, so a failure changes neither.
    """
    if not 0 <= index < MATCH_SLOTS:
        return MutationResult(False, 400)

    try:
        match = store.get_match(tournament_id, round_number, match_number)
        if match is None:
            players = [Player.placeholder() for _ in range(MATCH_SLOTS)]
            players[index] = player
            store.save_matches(tournament_id,
                               inserted=[Matchup(tournament_id, round_number, match_number, players)],
                               player_statuses={player.uuid: 'active'})
        else:
            match.players[index] = player
            store.save_matches(tournament_id, updated=[match], player_statuses={player.uuid: 'active'})
    except (StoreError, NotFoundError) as e:
        return _failure(e)

    logger.info(f'Added {player.name} to round {round_number} match {match_number} slot {index}')
    return MutationResult(True)


def move_or_swap_player_to_matchup(store, tournament_id, match_number: int, round_number: int,
                                   moving: MovingPlayer, index: int) -> MutationResult:
    """
    Move a player to slot ``index`` of another match.

    Whoever held the destination slot takes the player's old slot. Moving
    within the same match swaps its two slots. A missing source match or a
    player who is no longer in it is reported as 404.
    """
    if not 0 <= index < MATCH_SLOTS:
        return MutationResult(False, 400)

    try:
        if (moving.from_round, moving.from_match) == (round_number, match_number):
            match = store.get_match(tournament_id, round_number, match_number)
            if match is None:
                return MutationResult(False, 404)
            match.players.reverse()
            store.update_match(match)
            return MutationResult(True)

        source = store.get_match(tournament_id, moving.from_round, moving.from_match)
        if source is None:
            return MutationResult(False, 404)

        if (0 <= moving.from_index < len(source.players)
                and source.players[moving.from_index].uuid == moving.player.uuid):
            source_index = moving.from_index
        else:
            source_index = source.slot_of(moving.player.uuid)
        if source_index is None:
            logger.info(f'{moving.player.name} is no longer in round {moving.from_round} match {moving.from_match}')
            return MutationResult(False, 404)

        destination = store.get_match(tournament_id, round_number, match_number)
        created = destination is None
        if created:
            destination = Matchup(tournament_id, round_number, match_number)

        player = source.players[source_index]
        source.players[source_index] = destination.players[index]
        destination.players[index] = player

        if created:
            store.save_matches(tournament_id, updated=[source], inserted=[destination])
        else:
            store.save_matches(tournament_id, updated=[source, destination])
    except (StoreError, NotFoundError) as e:
        return _failure(e)

    logger.info(f'Moved {moving.player.name} to round {round_number} match {match_number} slot {index}')
    return MutationResult(True)
