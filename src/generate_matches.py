"""
Print the opening matchups for a roster file.

Usage:
    python src/generate_matches.py data/roster.yaml
    python src/generate_matches.py data/roster.yaml --format swiss --sorting seeded --group-size 4 --seed 7

The roster file holds a tournament and its players:

    tournament:
      id: 1
      tournament_type: robin
      skill_fields:
        - {name: rating, type: numeric}
    players:
      - {uuid: a1, name: Alice, skills: [{name: rating, value: 1800}]}
"""
import argparse
import os
import random
import sys

import yaml

from core.models import Tournament, TOURNAMENT_TYPES
from core.skills import format_players
from core.seeding import seed_players, SORTING_ALGORITHMS
from core.elimination import SingleEliminationBracket, pad_to_even
from core.robin import generate_round_robin_matchups
from core.swiss import generate_swiss_matchups


def load_roster(file_path):
    """Load a tournament and its aligned players from YAML."""
    with open(file_path, mode='r', encoding='utf-8') as file:
        data = yaml.safe_load(file) or {}
    if 'tournament' not in data:
        raise ValueError(f"{file_path} has no 'tournament' section")
    tournament = Tournament.from_dict(data['tournament'])
    players = format_players(tournament, data.get('players') or [])
    return tournament, players


def generate_matches(tournament, players, tournament_type=None, sorting_algo='ranked', sorting_value=2, rng=None):
    tournament_type = tournament_type or tournament.tournament_type
    if tournament_type == 'single':
        bracket = SingleEliminationBracket(tournament_id=tournament.id)
        return bracket.generate_bracket(pad_to_even(seed_players(players)))
    if tournament_type == 'robin':
        return generate_round_robin_matchups(players, tournament.id)
    return generate_swiss_matchups(players, tournament.id, sorting_algo, sorting_value, rng)


def format_matches(matches):
    """Render matches grouped by round, one "A vs B" line per match."""
    lines = []
    current_round = None
    for match in sorted(matches, key=lambda m: (m.round, m.match_number)):
        if match.round != current_round:
            if current_round is not None:
                lines.append('')
            lines.append(f"# Round {match.round}")
            current_round = match.round
        player1, player2 = (p.name or '-' for p in match.players)
        lines.append(f"{player1} vs {player2}")
    return '\n'.join(lines)


def main(argv=None):
    script_dir = os.path.dirname(__file__)
    base_dir = os.path.dirname(script_dir)

    parser = argparse.ArgumentParser(description='Generate opening matchups for a roster.')
    parser.add_argument('roster', nargs='?', default=os.path.join(base_dir, 'data', 'roster.yaml'),
                        help='Roster YAML file (default: data/roster.yaml)')
    parser.add_argument('--format', choices=TOURNAMENT_TYPES, default=None,
                        help='Override the tournament type from the roster file')
    parser.add_argument('--sorting', choices=SORTING_ALGORITHMS, default='ranked',
                        help='Swiss sort policy (default: ranked)')
    parser.add_argument('--group-size', type=int, default=2,
                        help='Group size for seeded Swiss sorting (default: 2)')
    parser.add_argument('--seed', type=int, default=None,
                        help='Random seed for reproducible Swiss shuffles')
    args = parser.parse_args(argv)

    try:
        tournament, players = load_roster(args.roster)
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if len(players) < 2:
        print("Error: at least two players are needed", file=sys.stderr)
        return 1

    rng = random.Random(args.seed) if args.seed is not None else None
    try:
        matches = generate_matches(tournament, players, args.format, args.sorting, args.group_size, rng)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(format_matches(matches))
    return 0


if __name__ == '__main__':
    sys.exit(main())
