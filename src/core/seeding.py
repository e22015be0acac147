"""
Seeding and sort policies applied before pairing.
"""
import random
from functools import cmp_to_key
from typing import List, Optional

from .models import Player, SkillField
from .skills import compare_skills, validate_skill_alignment

SORTING_ALGORITHMS = ('ranked', 'random', 'seeded')


def seed_players(players: List[Player], skill_fields: Optional[List[SkillField]] = None) -> List[Player]:
    """
    Order players by skill priority, best first.

    The sort is stable, so players whose compared skills tie keep their input
    order. The input list is not modified. When ``skill_fields`` is given, every
    player's skills must follow that order.
    """
    if skill_fields is not None:
        for player in players:
            validate_skill_alignment(player, skill_fields)
    return sorted(players, key=cmp_to_key(compare_skills))


def shuffle_players(players: List[Player], rng=None) -> List[Player]:
    """Return a shuffled copy. Without an explicit ``rng`` the result is not reproducible."""
    rng = rng or random
    shuffled = list(players)
    rng.shuffle(shuffled)
    return shuffled


def sort_players(players: List[Player], sorting_algo: str = 'ranked', sorting_value: int = 2,
                 rng=None) -> List[Player]:
    """
    Apply one of the Swiss sort policies.

    - ranked: plain skill seeding
    - random: uniform shuffle
    - seeded: skill seeding, then shuffle within consecutive groups of
      ``sorting_value`` players
    """
    if sorting_algo == 'random':
        return shuffle_players(players, rng)
    if sorting_algo == 'seeded':
        if not isinstance(sorting_value, int) or isinstance(sorting_value, bool) or sorting_value < 1:
            raise ValueError(f"sorting_value must be a positive integer, got {sorting_value!r}")
        ordered = seed_players(players)
        grouped = []
        for i in range(0, len(ordered), sorting_value):
            grouped.extend(shuffle_players(ordered[i:i + sorting_value], rng))
        return grouped
    if sorting_algo == 'ranked':
        return seed_players(players)
    raise ValueError(f"Unknown sorting algorithm '{sorting_algo}'. Expected one of {SORTING_ALGORITHMS}")
