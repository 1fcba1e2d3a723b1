"""
Value types shared by the standings calculator, bracket builder and the
group assignment workspace.
"""
import logging
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional, Tuple


TBD_NAME = "TBD"
UNKNOWN_NAME = "Unknown"
UNKNOWN_TAG = "UNK"

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    GROUPS = "groups"
    PLAYOFFS = "playoffs"
    PLAY_IN = "play-in"


class MatchStatus(str, Enum):
    SCHEDULED = "scheduled"
    LIVE = "live"
    COMPLETED = "completed"


# Spellings used by older admin forms and the league API
STATUS_ALIASES = {
    'finished': MatchStatus.COMPLETED.value,
    'played': MatchStatus.COMPLETED.value,
    'pending': MatchStatus.SCHEDULED.value,
    'upcoming': MatchStatus.SCHEDULED.value,
}


def _pick(data: Dict[str, Any], *keys, default=None):
    """Return the first key present in data (the remote API mixes snake_case and camelCase)."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _to_int(value, default=0) -> int:
    if value is None or value == '':
        return default
    return int(value)


def _parse_status(value, strict=False) -> MatchStatus:
    """
    Map a status string onto MatchStatus. Unknown values raise in strict mode
    and read as scheduled otherwise.
    """
    if isinstance(value, MatchStatus):
        return value
    text = str(value or MatchStatus.SCHEDULED.value).strip().lower()
    text = STATUS_ALIASES.get(text, text)
    try:
        return MatchStatus(text)
    except ValueError:
        if strict:
            raise
        logger.warning(f"Unknown match status {value!r}, treating it as scheduled")
        return MatchStatus.SCHEDULED


def _parse_stage(value, strict=False) -> Stage:
    if isinstance(value, Stage):
        return value
    try:
        return Stage(str(value or Stage.GROUPS.value).strip().lower())
    except ValueError:
        if strict:
            raise
        logger.warning(f"Unknown match stage {value!r}, treating it as groups")
        return Stage.GROUPS


class Team(NamedTuple):
    id: Any
    name: str
    tag: str = ""
    logo_url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Team":
        return cls(
            id=data['id'],
            name=data.get('name') or UNKNOWN_NAME,
            tag=data.get('tag') or "",
            logo_url=_pick(data, 'logo_url', 'logoUrl'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'name': self.name, 'tag': self.tag, 'logo_url': self.logo_url}


class Match(NamedTuple):
    """A best-of-N series between two teams. Either side may still be TBD."""
    id: Any
    stage: Stage
    round: int
    match_index: int = 0
    team_a_id: Any = None
    team_b_id: Any = None
    score_a: int = 0
    score_b: int = 0
    status: MatchStatus = MatchStatus.SCHEDULED
    winner_id: Any = None
    group_name: Optional[str] = None
    best_of: int = 1
    scheduled_at: Optional[str] = None
    metadata: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], strict: bool = False) -> "Match":
        """Parse an API record. strict rejects unknown status and stage values."""
        return cls(
            id=data['id'],
            stage=_parse_stage(data.get('stage'), strict),
            round=_to_int(data.get('round'), 1),
            match_index=_to_int(_pick(data, 'match_index', 'matchIndex'), 0),
            team_a_id=_pick(data, 'team_a_id', 'teamAId'),
            team_b_id=_pick(data, 'team_b_id', 'teamBId'),
            score_a=_to_int(_pick(data, 'score_a', 'scoreA'), 0),
            score_b=_to_int(_pick(data, 'score_b', 'scoreB'), 0),
            status=_parse_status(data.get('status'), strict),
            winner_id=_pick(data, 'winner_id', 'winnerId'),
            group_name=_pick(data, 'group_name', 'groupName'),
            best_of=_to_int(_pick(data, 'best_of', 'bestOf'), 1),
            scheduled_at=_pick(data, 'scheduled_at', 'scheduledAt'),
            metadata=data.get('metadata'),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = self._asdict()
        data['stage'] = self.stage.value
        data['status'] = self.status.value
        return data

    @property
    def is_completed(self) -> bool:
        return self.status == MatchStatus.COMPLETED

    def team_ids(self) -> Tuple[Any, Any]:
        return self.team_a_id, self.team_b_id


class StandingRow(NamedTuple):
    team: Team
    wins: int = 0
    losses: int = 0
    ties: int = 0
    set_wins: int = 0
    set_losses: int = 0
    points: int = 0
    history: Tuple[str, ...] = ()

    @property
    def played(self) -> int:
        return self.wins + self.losses + self.ties

    @property
    def set_diff(self) -> int:
        return self.set_wins - self.set_losses

    def to_dict(self) -> Dict[str, Any]:
        return {
            'team': self.team.to_dict(),
            'played': self.played,
            'wins': self.wins,
            'losses': self.losses,
            'ties': self.ties,
            'set_wins': self.set_wins,
            'set_losses': self.set_losses,
            'set_diff': self.set_diff,
            'points': self.points,
            'history': list(self.history),
        }


class BracketSide(NamedTuple):
    team_id: Any
    name: str
    tag: str
    score: int
    is_winner: bool


class BracketMatch(NamedTuple):
    id: Any
    round: int
    match_index: int
    status: MatchStatus
    team1: BracketSide
    team2: BracketSide
    scheduled_at: Optional[str] = None
    best_of: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'round': self.round,
            'match_index': self.match_index,
            'status': self.status.value,
            'scheduled_at': self.scheduled_at,
            'best_of': self.best_of,
            'team1': self.team1._asdict(),
            'team2': self.team2._asdict(),
        }


class Round(NamedTuple):
    number: int
    name: str
    matches: Tuple[BracketMatch, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'number': self.number,
            'name': self.name,
            'matches': [m.to_dict() for m in self.matches],
        }


class GroupAssignment(NamedTuple):
    """One entry of a committed partition. group_name is None for pool teams."""
    team_id: Any
    group_name: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {'teamId': self.team_id, 'groupName': self.group_name}


class Group:
    def __init__(self, id, name, teams=None):
        self.id = id
        self.name = name
        self.teams: List[Team] = list(teams) if teams else []

    def __repr__(self):
        return f"Group(id={self.id}, name={self.name}, teams={[t.id for t in self.teams]})"

    def contains(self, team_id) -> bool:
        return any(t.id == team_id for t in self.teams)

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'name': self.name, 'teams': [t.to_dict() for t in self.teams]}


def build_team_directory(teams) -> Dict[Any, Team]:
    """Index teams by id. Later duplicates do not override earlier ones."""
    directory = {}
    for team in teams:
        directory.setdefault(team.id, team)
    return directory


def filter_stage(matches, stage) -> List[Match]:
    stage = _parse_stage(stage, strict=True)
    return [m for m in matches if m.stage == stage]


MATCH_FIELD_ALIASES = {
    'matchIndex': 'match_index',
    'teamAId': 'team_a_id',
    'teamBId': 'team_b_id',
    'scoreA': 'score_a',
    'scoreB': 'score_b',
    'winnerId': 'winner_id',
    'groupName': 'group_name',
    'bestOf': 'best_of',
    'scheduledAt': 'scheduled_at',
}


def normalize_match_keys(data: Dict[str, Any]) -> Dict[str, Any]:
    """Rename camelCase match fields to their snake_case names."""
    return {MATCH_FIELD_ALIASES.get(k, k): v for k, v in data.items()}
