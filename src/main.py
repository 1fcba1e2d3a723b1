# Command line view of a tournament's standings and bracket

import argparse
import logging
import sys

from tournament_core.bracket import build_bracket, champion, playoff_matches
from tournament_core.config import build_service, load_config
from tournament_core.errors import TournamentError
from tournament_core.standings import calculate_group_standings


def print_standings(standings):
    if not standings:
        print("No group stage matches found.")
        return
    first_group = True
    for group_name, rows in standings.items():
        if not first_group:
            print()
        print(f"# Group {group_name}")
        print(f"{'#':>2}  {'Team':<24} {'W':>2} {'L':>2} {'T':>2} {'Sets':>7} {'Pts':>4}  Form")
        for position, row in enumerate(rows, start=1):
            sets = f"{row.set_wins}-{row.set_losses}"
            print(f"{position:>2}  {row.team.name:<24} {row.wins:>2} {row.losses:>2} {row.ties:>2} "
                  f"{sets:>7} {row.points:>4}  {''.join(row.history)}")
        first_group = False


def print_bracket(rounds):
    if not rounds:
        print("No playoff matches found.")
        return
    for bracket_round in rounds:
        print(f"\n--- {bracket_round.name} ---")
        if not bracket_round.matches:
            print("  No matches scheduled.")
        for match in bracket_round.matches:
            left, right = match.team1, match.team2
            marker1 = '*' if left.is_winner else ' '
            marker2 = '*' if right.is_winner else ' '
            print(f"  {marker1}{left.name} {left.score} - {right.score} {right.name}{marker2}  [{match.status.value}]")
    winner = champion(rounds)
    if winner:
        print(f"\nChampion: {winner.name}")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Show standings and bracket for a tournament.")
    parser.add_argument('tournament_id')
    parser.add_argument('--config', help="YAML settings file")
    parser.add_argument('--stage', choices=['standings', 'bracket', 'all'], default='all')
    parser.add_argument('--verbose', action='store_true')
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='%(levelname)s %(name)s: %(message)s')

    config = load_config(args.config)
    service = build_service(config)

    try:
        matches = service.list_matches(args.tournament_id)
        teams = service.list_teams(args.tournament_id)
    except TournamentError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.stage in ('standings', 'all'):
        print_standings(calculate_group_standings(matches, teams, config['history_limit']))
    if args.stage in ('bracket', 'all'):
        if args.stage == 'all':
            print()
        print_bracket(build_bracket(playoff_matches(matches), teams, config['round_names']))
    return 0


if __name__ == '__main__':
    sys.exit(main())
