"""
Flask JSON API for Tournament Matchmaker.

Thin request/response layer: every route loads records from the match store,
hands them to the pairing core and writes the result back.
"""
import os
import random
import logging
from flask import Flask, request, jsonify
from core.models import Tournament, SkillField, Player, TOURNAMENT_TYPES
from core.errors import NotFoundError, ValidationError, StoreError, VersionConflictError
from core.skills import format_players
from core.seeding import seed_players
from core.elimination import SingleEliminationBracket, assemble_bracket, pad_to_even, get_elimination_bracket_display
from core.robin import generate_round_robin_matchups, rank_round_robin_players
from core.swiss import generate_swiss_matchups, generate_next_round_pairings, close_round, swiss_standings
from core.roster import add_player_to_matchup_from_waitlist, move_or_swap_player_to_matchup, MovingPlayer
from core.storage import MatchStore, PLAYER_STATUSES, validate_tournament_id

app = Flask(__name__)

BASE_DIR = os.path.dirname(os.path.dirname(__file__))
DATA_DIR = os.environ.get('TOURNAMENT_DATA_DIR', os.path.join(BASE_DIR, 'data'))
LOCK_TIMEOUT = float(os.environ.get('TOURNAMENT_LOCK_TIMEOUT', '10'))

if os.environ.get('TOURNAMENT_LOG_LEVEL'):
    app.logger.setLevel(getattr(logging, os.environ['TOURNAMENT_LOG_LEVEL'].upper(), logging.INFO))


def get_store() -> MatchStore:
    """Return the match store for the configured data directory."""
    return MatchStore(DATA_DIR, lock_timeout=LOCK_TIMEOUT)


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not data or not isinstance(data, dict):
        raise ValidationError('No data provided')
    return data


def _int_field(data: dict, name: str, default=None) -> int:
    value = data.get(name, default)
    if value is None:
        raise ValidationError(f'Missing required field: {name}')
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValidationError(f'{name} must be an integer')
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{name} must be an integer')


def _roster_player(store: MatchStore, tournament: Tournament, uuid: str) -> Player:
    """Look up a roster record by uuid and align its skills to the tournament."""
    record = next((p for p in store.list_players(tournament.id) if p.get('uuid') == uuid), None)
    if record is None:
        raise NotFoundError(f'Player {uuid} is not in tournament {tournament.id}')
    return format_players(tournament, [record])[0]


@app.errorhandler(ValidationError)
def handle_validation_error(e):
    return jsonify({'success': False, 'error': str(e)}), 400


@app.errorhandler(NotFoundError)
def handle_not_found(e):
    return jsonify({'success': False, 'error': str(e)}), 404


@app.errorhandler(VersionConflictError)
def handle_version_conflict(e):
    app.logger.warning(f'Version conflict: {e}')
    return jsonify({'success': False, 'error': 'Match changed while it was being updated. Reload and retry.'}), 409


@app.errorhandler(StoreError)
def handle_store_error(e):
    app.logger.error(f'Store failure: {e}')
    return jsonify({'success': False, 'error': 'Server error'}), 500


@app.route('/api/tournaments', methods=['POST'])
def api_create_tournament():
    """Create a tournament.

    Requires: id and tournament_type in JSON body. Optional: name,
    skill_fields ([{name, type}]), max_players.
    """
    data = _json_body()
    tournament_id = data.get('id')
    if tournament_id is None or str(tournament_id).strip() == '':
        return jsonify({'success': False, 'error': 'Tournament id is required'}), 400
    validate_tournament_id(tournament_id)
    tournament_type = data.get('tournament_type', 'single')
    if tournament_type not in TOURNAMENT_TYPES:
        return jsonify({'success': False, 'error': f'tournament_type must be one of {", ".join(TOURNAMENT_TYPES)}'}), 400

    max_players = data.get('max_players')
    if max_players is not None:
        max_players = _int_field(data, 'max_players')
        if max_players < 2:
            return jsonify({'success': False, 'error': 'max_players must be at least 2'}), 400

    try:
        skill_fields = [SkillField.from_dict(f) for f in data.get('skill_fields') or []]
    except (KeyError, ValueError) as e:
        return jsonify({'success': False, 'error': f'Invalid skill field: {e}'}), 400

    store = get_store()
    try:
        store.get_tournament(tournament_id)
        return jsonify({'success': False, 'error': 'Tournament already exists'}), 409
    except NotFoundError:
        pass

    tournament = store.create_tournament(Tournament(
        id=tournament_id,
        name=data.get('name', ''),
        skill_fields=skill_fields,
        max_players=max_players,
        tournament_type=tournament_type,
    ))
    return jsonify({'success': True, 'tournament': tournament.to_dict()}), 201


@app.route('/api/tournaments/<tournament_id>', methods=['GET'])
def api_get_tournament(tournament_id):
    tournament = get_store().get_tournament(tournament_id)
    return jsonify({'success': True, 'tournament': tournament.to_dict()})


@app.route('/api/tournaments/<tournament_id>/players', methods=['GET'])
def api_list_players(tournament_id):
    status = request.args.get('status')
    if status and status not in PLAYER_STATUSES:
        return jsonify({'success': False, 'error': f'status must be one of {", ".join(PLAYER_STATUSES)}'}), 400
    players = get_store().list_players(tournament_id, status)
    return jsonify({'success': True, 'players': players})


@app.route('/api/tournaments/<tournament_id>/players', methods=['POST'])
def api_join_tournament(tournament_id):
    """Add a player to the roster.

    Players join as active while the tournament has room (max_players) and no
    matches yet; otherwise they go to the waitlist.
    """
    data = _json_body()
    uuid = (data.get('uuid') or '').strip()
    name = (data.get('name') or '').strip()
    if not uuid or not name:
        return jsonify({'success': False, 'error': 'Player uuid and name are required'}), 400
    account_type = data.get('account_type') or ('anonymous' if data.get('is_anonymous') else 'logged_in')
    if account_type not in ('logged_in', 'anonymous'):
        return jsonify({'success': False, 'error': 'account_type must be logged_in or anonymous'}), 400

    store = get_store()
    tournament = store.get_tournament(tournament_id)
    # Validates skill values before anything is written
    format_players(tournament, [dict(data, account_type=account_type)])

    roster = store.list_players(tournament.id)
    if any(p.get('uuid') == uuid for p in roster):
        return jsonify({'success': False, 'error': 'Player already joined this tournament'}), 409

    active = [p for p in roster if p.get('status') == 'active']
    started = bool(store.list_matches(tournament.id))
    full = tournament.max_players is not None and len(active) >= tournament.max_players
    status = 'waitlist' if started or full else 'active'

    record = {
        'uuid': uuid,
        'name': name,
        'email': data.get('email', ''),
        'account_type': account_type,
        'skills': data.get('skills') or [],
    }
    entry = store.add_player(tournament.id, record, status)
    app.logger.info(f'Player {uuid} joined tournament {tournament_id} as {status}')
    return jsonify({'success': True, 'player': entry}), 201


@app.route('/api/tournaments/<tournament_id>/start', methods=['POST'])
def api_start_tournament(tournament_id):
    """Generate the opening matchups for the tournament type.

    Optional JSON body for Swiss tournaments: sorting_algo (ranked, random,
    seeded), sorting_value (group size for seeded) and seed (for a
    reproducible shuffle).
    """
    data = request.get_json(silent=True) or {}
    store = get_store()
    tournament = store.get_tournament(tournament_id)

    if store.list_matches(tournament.id):
        return jsonify({'success': False, 'error': 'Tournament has already started'}), 409

    players = format_players(tournament, store.list_players(tournament.id, 'active'))
    if len(players) < 2:
        return jsonify({'success': False, 'error': 'At least two active players are needed'}), 400

    if tournament.tournament_type == 'single':
        bracket = SingleEliminationBracket(tournament_id=tournament.id)
        matchups = bracket.generate_bracket(pad_to_even(seed_players(players)))
    elif tournament.tournament_type == 'robin':
        matchups = generate_round_robin_matchups(players, tournament.id)
    else:
        sorting_algo = data.get('sorting_algo', 'ranked')
        sorting_value = _int_field(data, 'sorting_value', 2)
        rng = random.Random(data['seed']) if data.get('seed') is not None else None
        try:
            matchups = generate_swiss_matchups(players, tournament.id, sorting_algo, sorting_value, rng)
        except ValueError as e:
            return jsonify({'success': False, 'error': str(e)}), 400

    store.insert_matches(tournament.id, matchups)
    app.logger.info(f'Started tournament {tournament_id}: {len(matchups)} matches generated')
    return jsonify({'success': True, 'matches': [m.to_dict() for m in matchups]})


@app.route('/api/tournaments/<tournament_id>/bracket', methods=['GET'])
def api_bracket(tournament_id):
    store = get_store()
    tournament = store.get_tournament(tournament_id)
    bracket = assemble_bracket(store.list_matches(tournament.id), tournament.tournament_type)
    if tournament.tournament_type == 'single':
        return jsonify({'success': True, 'bracket': get_elimination_bracket_display(bracket)})
    return jsonify({'success': True, 'bracket': bracket.to_dict()})


@app.route('/api/tournaments/<tournament_id>/matches/result', methods=['POST'])
def api_enter_result(tournament_id):
    """Record a match result.

    Requires: round, match_number and either winner (uuid) or tie=true.
    Ties are refused for single elimination. A second submission for a
    decided match is accepted but changes nothing (recorded=false).
    """
    data = _json_body()
    round_number = _int_field(data, 'round')
    match_number = _int_field(data, 'match_number')
    tie = bool(data.get('tie', False))
    winner = data.get('winner')

    store = get_store()
    tournament = store.get_tournament(tournament_id)
    match = store.get_match(tournament.id, round_number, match_number)
    if match is None:
        return jsonify({'success': False, 'error': 'Match not found'}), 404

    if tournament.tournament_type == 'single':
        if tie:
            return jsonify({'success': False, 'error': 'Single elimination matches cannot tie'}), 400
        bracket = SingleEliminationBracket(tournament.id, [match])
        try:
            recorded = bracket.enter_result(match.id, winner)
        except ValueError as e:
            return jsonify({'success': False, 'error': str(e)}), 400
    else:
        try:
            recorded = match.record_result(winner, tie=tie)
        except ValueError as e:
            return jsonify({'success': False, 'error': str(e)}), 400

    if recorded:
        store.update_match(match)
        app.logger.info(f'Result for tournament {tournament_id} round {round_number} match {match_number}: {match.result}')
    else:
        app.logger.debug(f'Ignored duplicate result for round {round_number} match {match_number}')
    return jsonify({'success': True, 'recorded': recorded, 'match': match.to_dict()})


@app.route('/api/tournaments/<tournament_id>/next-round', methods=['POST'])
def api_next_round(tournament_id):
    """Generate the next round.

    Single elimination pairs the winners of the latest round; an empty
    result means the tournament is decided. Swiss turns unfinished matches
    of the latest round into ties, then pairs from the standings.
    """
    store = get_store()
    tournament = store.get_tournament(tournament_id)
    matches = store.list_matches(tournament.id)
    if not matches:
        return jsonify({'success': False, 'error': 'Tournament has not started'}), 400

    if tournament.tournament_type == 'single':
        bracket = SingleEliminationBracket(tournament.id, matches)
        undecided = bracket.undecided_matches(bracket.current_round)
        if undecided:
            return jsonify({'success': False,
                            'error': f'{len(undecided)} matches of round {bracket.current_round} are undecided'}), 400
        new_matches = bracket.next_round()
        if not new_matches:
            return jsonify({'success': True, 'complete': True, 'champion': bracket.champion(), 'matches': []})
    elif tournament.tournament_type == 'swiss':
        bracket = assemble_bracket(matches, 'swiss')
        closed = close_round(bracket.rounds[-1])
        if closed:
            store.update_matches(tournament.id, closed)
            app.logger.info(f'Closed {len(closed)} unfinished matches as ties in tournament {tournament_id}')
        new_matches = generate_next_round_pairings(bracket, tournament.id)
        if not new_matches:
            return jsonify({'success': True, 'complete': True, 'matches': []})
    else:
        return jsonify({'success': False, 'error': 'Round-robin schedules are generated in full at start'}), 400

    store.insert_matches(tournament.id, new_matches)
    return jsonify({'success': True, 'complete': False, 'matches': [m.to_dict() for m in new_matches]})


@app.route('/api/tournaments/<tournament_id>/standings', methods=['GET'])
def api_standings(tournament_id):
    store = get_store()
    tournament = store.get_tournament(tournament_id)
    matches = store.list_matches(tournament.id)
    bracket = assemble_bracket(matches, tournament.tournament_type)

    if tournament.tournament_type == 'robin':
        standings = [p.to_dict() for p in rank_round_robin_players(bracket)]
    elif tournament.tournament_type == 'swiss':
        standings = [dict(record, player=player.to_dict()) for player, record in swiss_standings(bracket)]
    else:
        elimination = SingleEliminationBracket(tournament.id, matches)
        seen = {}
        for match in matches:
            for player in match.players:
                if not player.is_placeholder:
                    seen.setdefault(player.uuid, player)
        standings = [
            {'player': player.to_dict(), 'eliminated': elimination.is_eliminated(uuid)}
            for uuid, player in seen.items()
        ]
        return jsonify({'success': True, 'standings': standings, 'champion': elimination.champion()})

    return jsonify({'success': True, 'standings': standings})


@app.route('/api/tournaments/<tournament_id>/waitlist/add', methods=['POST'])
def api_add_from_waitlist(tournament_id):
    """Place a waitlisted player into a match slot.

    Requires: uuid, round, match_number, index in JSON body.
    """
    data = _json_body()
    uuid = (data.get('uuid') or '').strip()
    if not uuid:
        return jsonify({'success': False, 'error': 'Player uuid is required'}), 400
    round_number = _int_field(data, 'round')
    match_number = _int_field(data, 'match_number')
    index = _int_field(data, 'index')

    store = get_store()
    tournament = store.get_tournament(tournament_id)
    player = _roster_player(store, tournament, uuid)

    result = add_player_to_matchup_from_waitlist(store, tournament.id, match_number, round_number, player, index)
    return jsonify(result.to_dict()), result.error_code or 200


@app.route('/api/tournaments/<tournament_id>/matches/move', methods=['POST'])
def api_move_player(tournament_id):
    """Move or swap a player into a match slot.

    Requires: round, match_number, index (destination) and moving:
    {uuid, from_round, from_match, from_index}.
    """
    data = _json_body()
    moving_data = data.get('moving')
    if not isinstance(moving_data, dict) or not moving_data.get('uuid'):
        return jsonify({'success': False, 'error': 'moving player is required'}), 400
    round_number = _int_field(data, 'round')
    match_number = _int_field(data, 'match_number')
    index = _int_field(data, 'index')

    store = get_store()
    tournament = store.get_tournament(tournament_id)
    try:
        player = _roster_player(store, tournament, moving_data['uuid'])
    except NotFoundError:
        player = Player(uuid=moving_data['uuid'], name=moving_data.get('name') or moving_data['uuid'])

    moving = MovingPlayer(
        player,
        from_round=_int_field(moving_data, 'from_round'),
        from_match=_int_field(moving_data, 'from_match'),
        from_index=_int_field(moving_data, 'from_index', 0),
    )
    result = move_or_swap_player_to_matchup(store, tournament.id, match_number, round_number, moving, index)
    return jsonify(result.to_dict()), result.error_code or 200


if __name__ == '__main__':
    app.run(debug=True, port=5000)
