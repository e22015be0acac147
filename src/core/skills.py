"""
Skill comparison and roster ingestion.

A tournament declares an ordered list of skill fields. Players are compared
field by field in that order, higher values first.
"""
import logging
import numbers
from typing import List, Dict, Union

from .errors import SkillValidationError, ValidationError
from .models import Player, SkillField, SkillValue, Tournament

logger = logging.getLogger(__name__)


def _skill_values(item: Union[Player, List]) -> List:
    skills = item.skills if isinstance(item, Player) else item
    values = []
    for skill in skills or []:
        if isinstance(skill, SkillValue):
            values.append(skill.value)
        elif isinstance(skill, dict):
            values.append(skill.get('value'))
        else:
            values.append(skill)
    return values


def compare_skills(a, b) -> float:
    """
    Compare two players (or skill lists) by skill priority.

    Returns a negative number when ``a`` ranks first, positive when ``b`` does,
    and 0 when every compared position ties. Only the first
    ``min(len(a), len(b))`` positions are compared; missing values count as 0.
    """
    a_values = _skill_values(a)
    b_values = _skill_values(b)
    for i in range(min(len(a_values), len(b_values))):
        a_value = a_values[i] or 0
        b_value = b_values[i] or 0
        if a_value != b_value:
            return b_value - a_value
    return 0


def _coerce_value(field: SkillField, raw, player_name) -> Union[int, float]:
    if raw is None or raw == '':
        return 0
    if isinstance(raw, bool):
        raise SkillValidationError(f"Skill '{field.name}' for {player_name} must be a number, got {raw!r}")
    if isinstance(raw, numbers.Number):
        return raw
    try:
        number = float(raw)
    except (TypeError, ValueError):
        raise SkillValidationError(f"Skill '{field.name}' for {player_name} must be a number, got {raw!r}")
    return int(number) if number.is_integer() else number


def align_skills(skill_fields: List[SkillField], raw_skills, player_name='player') -> List[SkillValue]:
    """
    Build a skill list in ``skill_fields`` order from raw ``{name, value}`` records.

    Missing skills get value 0. Duplicate names are rejected; names that the
    tournament does not define are dropped.
    """
    by_name = {}
    if isinstance(raw_skills, dict):
        by_name = dict(raw_skills)
    else:
        for skill in raw_skills or []:
            name = skill.get('name') if isinstance(skill, dict) else getattr(skill, 'name', None)
            value = skill.get('value') if isinstance(skill, dict) else getattr(skill, 'value', None)
            if name in by_name:
                raise SkillValidationError(f"Duplicate skill '{name}' for {player_name}")
            by_name[name] = value

    known = {field.name for field in skill_fields}
    for name in by_name:
        if name not in known:
            logger.debug(f"Ignoring unknown skill '{name}' for {player_name}")

    return [
        SkillValue(field.name, field.type, _coerce_value(field, by_name.get(field.name), player_name))
        for field in skill_fields
    ]


def validate_skill_alignment(player: Player, skill_fields: List[SkillField]):
    """Raise SkillValidationError unless the player's skills follow the field order."""
    names = [skill.name for skill in player.skills]
    expected = [field.name for field in skill_fields]
    if names != expected:
        raise SkillValidationError(
            f"Skills for {player.name} are {names}, expected {expected}"
        )


def format_players(tournament: Tournament, records: List[Dict]) -> List[Player]:
    """
    Turn roster records from the store into Players aligned to the tournament.

    Records may use the store's field names (``uuid``, ``name``) or the roster
    table's (``member_uuid``, ``player_name``, ``is_anonymous``).
    """
    players = []
    for record in records:
        name = record.get('name') or record.get('player_name') or 'Unknown'
        uuid = record.get('uuid') or record.get('member_uuid')
        if not uuid:
            raise ValidationError(f"Roster entry {name} has no uuid")
        account_type = record.get('account_type')
        if not account_type:
            account_type = 'anonymous' if record.get('is_anonymous') else 'logged_in'
        players.append(Player(
            uuid=uuid,
            name=name,
            email=record.get('email') or '',
            account_type=account_type,
            score=0,
            skills=align_skills(tournament.skill_fields, record.get('skills'), name),
        ))
    return players
