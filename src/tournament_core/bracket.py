"""
Single elimination bracket display.

The seeding itself is produced by the remote service; this module only turns
its flat match list into rounds ready for rendering.
"""
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .models import (
    BracketMatch,
    BracketSide,
    Match,
    MatchStatus,
    Round,
    Stage,
    Team,
    TBD_NAME,
    UNKNOWN_NAME,
    build_team_directory,
    filter_stage,
)


DEFAULT_ROUND_NAMES = ("Quarterfinals", "Semifinals", "Grand Finals")


def get_round_name(round_number: int, max_round: int,
                   names: Sequence[str] = DEFAULT_ROUND_NAMES) -> str:
    """
    Get the name of a round relative to the final.

    The last round takes the last name, the one before it the second to last
    name and so on. Rounds further from the final than there are names get a
    generic "Round N" label.
    """
    index = len(names) - (max_round - round_number + 1)
    if 0 <= index < len(names):
        return names[index]
    return f"Round {round_number}"


def playoff_matches(matches: Iterable[Match]) -> List[Match]:
    return filter_stage(matches, Stage.PLAYOFFS)


def _side(team_id, score: int, winner_id, directory: Dict[Any, Team]) -> BracketSide:
    if team_id is None:
        return BracketSide(team_id=None, name=TBD_NAME, tag="", score=score, is_winner=False)
    team = directory.get(team_id)
    return BracketSide(
        team_id=team_id,
        name=team.name if team else UNKNOWN_NAME,
        tag=team.tag if team else "",
        score=score,
        is_winner=winner_id is not None and winner_id == team_id,
    )


def to_bracket_match(match: Match, directory: Dict[Any, Team]) -> BracketMatch:
    return BracketMatch(
        id=match.id,
        round=match.round,
        match_index=match.match_index,
        status=match.status,
        team1=_side(match.team_a_id, match.score_a, match.winner_id, directory),
        team2=_side(match.team_b_id, match.score_b, match.winner_id, directory),
        scheduled_at=match.scheduled_at,
        best_of=match.best_of,
    )


def build_bracket(matches: Iterable[Match], teams: Iterable[Team] = (),
                  round_names: Sequence[str] = DEFAULT_ROUND_NAMES) -> List[Round]:
    """
    Group matches into rounds 1..max_round.

    Within a round matches are ordered by match_index, which is the left to
    right slot of the bracket. A round number with no matches still gets an
    (empty) Round so the column count always equals the highest round.
    """
    matches = list(matches)
    if not matches:
        return []

    directory = build_team_directory(teams)
    max_round = max(m.round for m in matches)

    rounds = []
    for round_number in range(1, max_round + 1):
        round_matches = sorted(
            (m for m in matches if m.round == round_number),
            key=lambda m: m.match_index,
        )
        rounds.append(Round(
            number=round_number,
            name=get_round_name(round_number, max_round, round_names),
            matches=tuple(to_bracket_match(m, directory) for m in round_matches),
        ))
    return rounds


def champion(rounds: List[Round]) -> Optional[BracketSide]:
    """Winning side of the final, if the final has been decided."""
    if not rounds:
        return None
    final = rounds[-1]
    if len(final.matches) != 1 or final.matches[0].status != MatchStatus.COMPLETED:
        return None
    for side in (final.matches[0].team1, final.matches[0].team2):
        if side.is_winner:
            return side
    return None
