"""
Group stage standings.
"""
from typing import Any, Dict, Iterable, List

from .models import (
    Match,
    Stage,
    StandingRow,
    Team,
    UNKNOWN_NAME,
    UNKNOWN_TAG,
    build_team_directory,
)


DEFAULT_HISTORY_LIMIT = 5

WIN_POINTS = 3
TIE_POINTS = 1


def group_names(matches: Iterable[Match]) -> List[str]:
    """Sorted labels of all groups that have at least one group stage match."""
    return sorted({m.group_name for m in matches if m.stage == Stage.GROUPS and m.group_name})


def calculate_standings(matches: Iterable[Match], teams: Iterable[Team],
                        history_limit: int = DEFAULT_HISTORY_LIMIT) -> List[StandingRow]:
    """
    Calculate the ranked standings of a single group.

    Rows are created for every team referenced by the matches, in the order
    they are first encountered. Only completed matches with both sides known
    count towards the table:
    - win: 3 points, loss: 0 points
    - completed without a winner: a tie, 1 point each
    Set tallies add each side's raw score whatever the outcome.

    Ranking: points -> match wins -> set differential. Remaining ties keep
    encounter order.
    """
    matches = list(matches)
    directory = build_team_directory(teams)
    stats: Dict[Any, Dict[str, Any]] = {}

    for match in matches:
        for team_id in match.team_ids():
            if team_id is None or team_id in stats:
                continue
            team = directory.get(team_id) or Team(id=team_id, name=UNKNOWN_NAME, tag=UNKNOWN_TAG)
            stats[team_id] = {
                'team': team,
                'wins': 0,
                'losses': 0,
                'ties': 0,
                'set_wins': 0,
                'set_losses': 0,
                'points': 0,
                'history': [],
            }

    for match in matches:
        if not match.is_completed:
            continue
        if match.team_a_id is None or match.team_b_id is None:
            continue

        team_a = stats[match.team_a_id]
        team_b = stats[match.team_b_id]

        team_a['set_wins'] += match.score_a
        team_a['set_losses'] += match.score_b
        team_b['set_wins'] += match.score_b
        team_b['set_losses'] += match.score_a

        if match.winner_id is not None and match.winner_id == match.team_a_id:
            winner, loser = team_a, team_b
        elif match.winner_id is not None and match.winner_id == match.team_b_id:
            winner, loser = team_b, team_a
        else:
            for side in (team_a, team_b):
                side['ties'] += 1
                side['points'] += TIE_POINTS
                side['history'].append('T')
            continue

        winner['wins'] += 1
        winner['points'] += WIN_POINTS
        winner['history'].append('W')
        loser['losses'] += 1
        loser['history'].append('L')

    rows = []
    for team_stats in stats.values():
        history = team_stats['history'][-history_limit:] if history_limit > 0 else []
        rows.append(StandingRow(
            team=team_stats['team'],
            wins=team_stats['wins'],
            losses=team_stats['losses'],
            ties=team_stats['ties'],
            set_wins=team_stats['set_wins'],
            set_losses=team_stats['set_losses'],
            points=team_stats['points'],
            history=tuple(history),
        ))

    # TODO: head-to-head as a fourth criterion once the league rulebook defines it
    return sorted(rows, key=lambda r: (-r.points, -r.wins, -r.set_diff))


def calculate_group_standings(matches: Iterable[Match], teams: Iterable[Team],
                              history_limit: int = DEFAULT_HISTORY_LIMIT) -> Dict[str, List[StandingRow]]:
    """
    Calculate standings for every group.

    Returns: {group_name: [StandingRow, ...]} with groups in label order.
    """
    matches = list(matches)
    teams = list(teams)
    standings = {}
    for name in group_names(matches):
        group_matches = [m for m in matches if m.stage == Stage.GROUPS and m.group_name == name]
        standings[name] = calculate_standings(group_matches, teams, history_limit)
    return standings
