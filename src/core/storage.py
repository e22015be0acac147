"""
YAML-backed store for tournaments, rosters and match rows.

Each tournament lives in its own ``<data_dir>/tournaments/<id>.yaml`` file.
Every read and write of that file holds a FileLock, so a single call is
consistent. Match rows carry a ``version``: ``update_match`` only succeeds when
the stored version still equals the one the caller read.
"""
import logging
import os
import re
from contextlib import contextmanager
from typing import List, Dict, Optional

import yaml
from filelock import FileLock, Timeout

from .errors import (
    MatchNotFoundError,
    PlayerNotFoundError,
    StoreError,
    TournamentNotFoundError,
    ValidationError,
    VersionConflictError,
)
from .models import Matchup, Tournament

logger = logging.getLogger(__name__)

PLAYER_STATUSES = ('active', 'waitlist')
TOURNAMENT_ID_PATTERN = re.compile(r'^[A-Za-z0-9_-]+$')


def validate_tournament_id(tournament_id) -> str:
    """Tournament ids name files, so only letters, digits, _ and - are allowed."""
    text = str(tournament_id)
    if not TOURNAMENT_ID_PATTERN.fullmatch(text):
        raise ValidationError(f"Invalid tournament id {tournament_id!r}")
    return text


class MatchStore:
    def __init__(self, data_dir: str, lock_timeout: float = 10):
        self.data_dir = data_dir
        self.tournaments_dir = os.path.join(data_dir, 'tournaments')
        self.lock_timeout = lock_timeout

    def _path(self, tournament_id) -> str:
        return os.path.join(self.tournaments_dir, f'{validate_tournament_id(tournament_id)}.yaml')

    def _lock(self, tournament_id) -> FileLock:
        os.makedirs(self.tournaments_dir, exist_ok=True)
        return FileLock(self._path(tournament_id) + '.lock', timeout=self.lock_timeout)

    def _read(self, tournament_id) -> Dict:
        path = self._path(tournament_id)
        if not os.path.exists(path):
            raise TournamentNotFoundError(tournament_id)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise StoreError(f'Failed to read {path}: {e}') from e
        if not data or 'tournament' not in data:
            raise StoreError(f'{path} does not contain a tournament')
        data.setdefault('players', [])
        data.setdefault('matches', [])
        data.setdefault('next_match_id', 1)
        return data

    def _write(self, tournament_id, data: Dict):
        path = self._path(tournament_id)
        try:
            with open(path, 'w', encoding='utf-8') as f:
                yaml.dump(data, f, default_flow_style=False, sort_keys=False)
        except OSError as e:
            raise StoreError(f'Failed to write {path}: {e}') from e

    @contextmanager
    def _locked(self, tournament_id):
        try:
            with self._lock(tournament_id):
                yield
        except Timeout as e:
            raise StoreError(f'Timed out waiting for the lock on tournament {tournament_id}') from e

    # Tournaments

    def create_tournament(self, tournament: Tournament) -> Tournament:
        with self._locked(tournament.id):
            if os.path.exists(self._path(tournament.id)):
                raise StoreError(f'Tournament {tournament.id} already exists')
            self._write(tournament.id, {
                'tournament': tournament.to_dict(),
                'players': [],
                'matches': [],
                'next_match_id': 1,
            })
        logger.info(f'Created tournament {tournament.id} ({tournament.tournament_type})')
        return tournament

    def get_tournament(self, tournament_id) -> Tournament:
        with self._locked(tournament_id):
            data = self._read(tournament_id)
        return Tournament.from_dict(data['tournament'])

    # Roster

    def add_player(self, tournament_id, record: Dict, status: str = 'waitlist') -> Dict:
        if status not in PLAYER_STATUSES:
            raise ValueError(f"Unknown player status '{status}'")
        if not record.get('uuid'):
            raise ValueError('Player record needs a uuid')
        with self._locked(tournament_id):
            data = self._read(tournament_id)
            if any(p['uuid'] == record['uuid'] for p in data['players']):
                raise StoreError(f"Player {record['uuid']} already joined tournament {tournament_id}")
            entry = dict(record)
            entry['status'] = status
            data['players'].append(entry)
            self._write(tournament_id, data)
        return entry

    def list_players(self, tournament_id, status: Optional[str] = None) -> List[Dict]:
        with self._locked(tournament_id):
            data = self._read(tournament_id)
        if status is None:
            return data['players']
        return [p for p in data['players'] if p.get('status') == status]

    def set_player_status(self, tournament_id, uuid, status: str):
        if status not in PLAYER_STATUSES:
            raise ValueError(f"Unknown player status '{status}'")
        with self._locked(tournament_id):
            data = self._read(tournament_id)
            player = next((p for p in data['players'] if p['uuid'] == uuid), None)
            if player is None:
                raise PlayerNotFoundError(f'Player {uuid} is not in tournament {tournament_id}')
            player['status'] = status
            self._write(tournament_id, data)

    # Matches

    def list_matches(self, tournament_id) -> List[Matchup]:
        with self._locked(tournament_id):
            data = self._read(tournament_id)
        return [Matchup.from_dict(row) for row in data['matches']]

    def get_match(self, tournament_id, round_number: int, match_number: int) -> Optional[Matchup]:
        for match in self.list_matches(tournament_id):
            if match.key == (round_number, match_number):
                return match
        return None

    def insert_matches(self, tournament_id, matchups: List[Matchup]) -> List[Matchup]:
        """
        Bulk insert new match rows.

        Fails without writing anything if a (round, match_number) pair is
        already taken. Inserted matchups get their store id and version 1.
        """
        self.save_matches(tournament_id, inserted=matchups)
        logger.debug(f'Inserted {len(matchups)} matches into tournament {tournament_id}')
        return matchups

    def update_matches(self, tournament_id, matchups: List[Matchup]) -> List[Matchup]:
        """
        Write back match rows read earlier, all or nothing.

        Each row is only written if its stored version equals ``match.version``;
        otherwise VersionConflictError is raised and nothing is written. On
        success every matchup's version is bumped in place.
        """
        self.save_matches(tournament_id, updated=matchups)
        return matchups

    def update_match(self, matchup: Matchup) -> Matchup:
        return self.update_matches(matchup.tournament_id, [matchup])[0]

    def save_matches(self, tournament_id, updated: Optional[List[Matchup]] = None,
                     inserted: Optional[List[Matchup]] = None,
                     player_statuses: Optional[Dict[str, str]] = None):
        """
        Update rows, insert rows and change roster statuses under one lock.

        Every check runs before anything is written, so a conflict, a taken
        key or an unknown player leaves the file as it was.
        """
        updated = updated or []
        inserted = inserted or []
        player_statuses = player_statuses or {}
        for status in player_statuses.values():
            if status not in PLAYER_STATUSES:
                raise ValueError(f"Unknown player status '{status}'")

        with self._locked(tournament_id):
            data = self._read(tournament_id)
            positions = {(row['round'], row['match_number']): i for i, row in enumerate(data['matches'])}

            for match in updated:
                if match.key not in positions:
                    raise MatchNotFoundError(
                        f'Round {match.round} match {match.match_number} not found in tournament {tournament_id}'
                    )
                stored_version = data['matches'][positions[match.key]].get('version', 0)
                if stored_version != match.version:
                    raise VersionConflictError(match.key, match.version, stored_version)

            taken = set(positions)
            for match in inserted:
                if match.key in taken:
                    raise StoreError(
                        f'Round {match.round} match {match.match_number} already exists '
                        f'in tournament {tournament_id}'
                    )
                taken.add(match.key)

            roster = {p['uuid']: p for p in data['players']}
            for uuid in player_statuses:
                if uuid not in roster:
                    raise PlayerNotFoundError(f'Player {uuid} is not in tournament {tournament_id}')

            for match in updated:
                match.version += 1
                data['matches'][positions[match.key]] = match.to_dict()
            for match in inserted:
                match.tournament_id = tournament_id
                match.id = data['next_match_id']
                match.version = 1
                data['next_match_id'] += 1
                data['matches'].append(match.to_dict())
            for uuid, status in player_statuses.items():
                roster[uuid]['status'] = status
            self._write(tournament_id, data)
