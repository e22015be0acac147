"""
Data model shared by the pairing generators, the bracket assembly and the store.

Every model round-trips through plain dicts (``to_dict`` / ``from_dict``), which is
the shape written to the YAML store and returned by the JSON API.
"""
from typing import List, Dict, Optional

ACCOUNT_TYPES = ('logged_in', 'anonymous', 'placeholder')
SKILL_TYPES = ('numeric', 'categorical')
TOURNAMENT_TYPES = ('single', 'robin', 'swiss')

BYE_NAME = 'BYE'


class SkillField:
    def __init__(self, name, type='numeric'):
        if type not in SKILL_TYPES:
            raise ValueError(f"Unknown skill type '{type}'")
        self.name = name
        self.type = type

    def to_dict(self) -> Dict:
        return {'name': self.name, 'type': self.type}

    @classmethod
    def from_dict(cls, data) -> 'SkillField':
        # Older tournaments stored bare field names
        if isinstance(data, str):
            return cls(name=data)
        return cls(name=data['name'], type=data.get('type', 'numeric'))

    def __repr__(self):
        return f"SkillField(name={self.name}, type={self.type})"


class SkillValue:
    def __init__(self, name, type='numeric', value=0):
        self.name = name
        self.type = type
        self.value = value

    def to_dict(self) -> Dict:
        return {'name': self.name, 'type': self.type, 'value': self.value}

    @classmethod
    def from_dict(cls, data: Dict) -> 'SkillValue':
        return cls(name=data['name'], type=data.get('type', 'numeric'), value=data.get('value', 0))

    def __repr__(self):
        return f"SkillValue(name={self.name}, value={self.value})"


class Player:
    """A roster entry as it appears inside a matchup."""

    def __init__(self, uuid, name, email='', account_type='logged_in', score=0,
                 skills: Optional[List[SkillValue]] = None, placeholder_player=False):
        if account_type not in ACCOUNT_TYPES:
            raise ValueError(f"Unknown account type '{account_type}'")
        self.uuid = uuid
        self.name = name
        self.email = email
        self.account_type = account_type
        self.score = score
        self.skills = skills if skills else []
        self.placeholder_player = placeholder_player

    @classmethod
    def placeholder(cls) -> 'Player':
        """An empty roster slot."""
        return cls(uuid='', name='', account_type='placeholder')

    @classmethod
    def bye(cls, flagged: bool = False) -> 'Player':
        """The synthetic BYE opponent. Swiss pairing emits it with ``flagged=True``."""
        return cls(uuid='', name=BYE_NAME, account_type='placeholder', placeholder_player=flagged)

    @property
    def is_placeholder(self) -> bool:
        return not self.uuid or self.account_type == 'placeholder'

    @property
    def is_bye(self) -> bool:
        return self.is_placeholder and self.name == BYE_NAME

    def to_dict(self) -> Dict:
        data = {
            'uuid': self.uuid,
            'name': self.name,
            'email': self.email,
            'account_type': self.account_type,
            'score': self.score,
            'skills': [skill.to_dict() for skill in self.skills],
        }
        if self.placeholder_player:
            data['placeholder_player'] = True
        return data

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> 'Player':
        if not data:
            return cls.placeholder()
        return cls(
            uuid=data.get('uuid') or '',
            name=data.get('name') or '',
            email=data.get('email') or '',
            account_type=data.get('account_type') or 'logged_in',
            score=data.get('score') or 0,
            skills=[SkillValue.from_dict(s) for s in data.get('skills') or []],
            placeholder_player=bool(data.get('placeholder_player', False)),
        )

    def __repr__(self):
        return f"Player(uuid={self.uuid}, name={self.name}, account_type={self.account_type})"


class MatchResult:
    """Base for the three possible states of a match outcome."""
    kind = None
    is_complete = True

    def to_dict(self) -> Dict:
        return {'type': self.kind}

    def __eq__(self, other):
        return isinstance(other, MatchResult) and self.to_dict() == other.to_dict()

    def __hash__(self):
        return hash(repr(self.to_dict()))


class Pending(MatchResult):
    kind = 'pending'
    is_complete = False

    def __repr__(self):
        return "Pending()"


class Decisive(MatchResult):
    kind = 'decisive'

    def __init__(self, winner_id, loser_id=''):
        self.winner_id = winner_id
        self.loser_id = loser_id

    def to_dict(self) -> Dict:
        return {'type': self.kind, 'winner': self.winner_id, 'loser': self.loser_id}

    def __repr__(self):
        return f"Decisive(winner_id={self.winner_id}, loser_id={self.loser_id})"


class Tie(MatchResult):
    kind = 'tie'

    def __init__(self, participant_ids):
        self.participant_ids = list(participant_ids)

    def to_dict(self) -> Dict:
        return {'type': self.kind, 'participants': list(self.participant_ids)}

    def __repr__(self):
        return f"Tie(participant_ids={self.participant_ids})"


def result_from_dict(data: Optional[Dict]) -> MatchResult:
    if not data:
        return Pending()
    kind = data.get('type', 'pending')
    if kind == 'decisive':
        return Decisive(data['winner'], data.get('loser', ''))
    if kind == 'tie':
        return Tie(data.get('participants', []))
    if kind == 'pending':
        return Pending()
    raise ValueError(f"Unknown match result type '{kind}'")


class Matchup:
    """One match: exactly two player slots, placeholders filling the empty ones."""

    def __init__(self, tournament_id, round, match_number, players: Optional[List[Player]] = None,
                 result: Optional[MatchResult] = None, id=-1, version=0):
        if round < 1:
            raise ValueError(f"Round must be at least 1, got {round}")
        players = list(players) if players else []
        if len(players) > 2:
            raise ValueError(f"A match holds two players, got {len(players)}")
        while len(players) < 2:
            players.append(Player.placeholder())
        self.tournament_id = tournament_id
        self.round = round
        self.match_number = match_number
        self.players = players
        self.result = result if result is not None else Pending()
        self.id = id
        self.version = version

    @property
    def key(self):
        return (self.round, self.match_number)

    @property
    def winner(self) -> Optional[str]:
        if isinstance(self.result, Decisive):
            return self.result.winner_id
        return None

    @property
    def loser(self) -> Optional[str]:
        if isinstance(self.result, Decisive):
            return self.result.loser_id
        return None

    @property
    def is_tie(self) -> bool:
        return isinstance(self.result, Tie)

    @property
    def is_complete(self) -> bool:
        return self.result.is_complete

    @property
    def is_placeholder(self) -> bool:
        return all(p.is_placeholder for p in self.players)

    @property
    def player_ids(self) -> List[str]:
        return [p.uuid for p in self.players if not p.is_placeholder]

    def slot_of(self, uuid) -> Optional[int]:
        for index, player in enumerate(self.players):
            if player.uuid and player.uuid == uuid:
                return index
        return None

    def record_result(self, winner_id=None, tie=False) -> bool:
        """
        Store the outcome of this match.

        Returns False and changes nothing when a result is already recorded.
        The loser is whichever slot does not hold the winner.
        """
        if self.is_complete:
            return False
        if tie:
            self.result = Tie(self.player_ids)
            return True
        if not winner_id or winner_id not in self.player_ids:
            raise ValueError(f"Player {winner_id!r} is not in round {self.round} match {self.match_number}")
        player1, player2 = self.players
        loser_id = player2.uuid if winner_id == player1.uuid else player1.uuid
        self.result = Decisive(winner_id, loser_id)
        return True

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'tournament_id': self.tournament_id,
            'round': self.round,
            'match_number': self.match_number,
            'players': [p.to_dict() for p in self.players],
            'result': self.result.to_dict(),
            'winner': self.winner,
            'is_tie': self.is_tie,
            'version': self.version,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Matchup':
        players = [Player.from_dict(p) for p in data.get('players') or []]
        if 'result' in data:
            result = result_from_dict(data['result'])
        else:
            # Rows written before results were tagged only carry winner/is_tie
            result = Pending()
            ids = [p.uuid for p in players if not p.is_placeholder]
            if data.get('winner'):
                winner = data['winner']
                loser = next((uuid for uuid in ids if uuid != winner), '')
                result = Decisive(winner, loser)
            elif data.get('is_tie'):
                result = Tie(ids)
        return cls(
            tournament_id=data.get('tournament_id'),
            round=data['round'],
            match_number=data['match_number'],
            players=players,
            result=result,
            id=data.get('id', -1),
            version=data.get('version', 0),
        )

    def __repr__(self):
        names = ' vs '.join(p.name or '-' for p in self.players)
        return f"Matchup(round={self.round}, match_number={self.match_number}, {names}, result={self.result})"


class Round:
    def __init__(self, matches: Optional[List[Matchup]] = None):
        self.matches = matches if matches else []

    def to_dict(self) -> Dict:
        return {'matches': [m.to_dict() for m in self.matches]}

    @classmethod
    def from_dict(cls, data: Dict) -> 'Round':
        return cls([Matchup.from_dict(m) for m in data.get('matches', [])])


class Bracket:
    def __init__(self, rounds: Optional[List[Round]] = None):
        self.rounds = rounds if rounds else []

    def all_matches(self) -> List[Matchup]:
        return [match for round_ in self.rounds for match in round_.matches]

    def to_dict(self) -> Dict:
        return {'rounds': [r.to_dict() for r in self.rounds]}

    @classmethod
    def from_dict(cls, data: Dict) -> 'Bracket':
        return cls([Round.from_dict(r) for r in data.get('rounds', [])])


class Tournament:
    def __init__(self, id, name='', skill_fields: Optional[List[SkillField]] = None,
                 max_players=None, tournament_type='single'):
        if tournament_type not in TOURNAMENT_TYPES:
            raise ValueError(f"Unknown tournament type '{tournament_type}'")
        self.id = id
        self.name = name
        self.skill_fields = skill_fields if skill_fields else []
        self.max_players = max_players
        self.tournament_type = tournament_type

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'name': self.name,
            'skill_fields': [f.to_dict() for f in self.skill_fields],
            'max_players': self.max_players,
            'tournament_type': self.tournament_type,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Tournament':
        return cls(
            id=data['id'],
            name=data.get('name', ''),
            skill_fields=[SkillField.from_dict(f) for f in data.get('skill_fields') or []],
            max_players=data.get('max_players'),
            tournament_type=data.get('tournament_type', 'single'),
        )

    def __repr__(self):
        return f"Tournament(id={self.id}, name={self.name}, type={self.tournament_type})"
