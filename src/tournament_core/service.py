"""
Access to the remote tournament service.

HttpTournamentService talks to the league API over HTTP/JSON.
YamlTournamentService keeps the same contract on local YAML files and is
used for offline dashboards and tests. Neither of them reimplements the
round-robin pairing or bracket seeding; those stay on the league API.
"""
import logging
import os
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import requests
import yaml
from filelock import FileLock

from .errors import RemoteServiceError, ValidationError
from .models import GroupAssignment, Match, MatchStatus, Team, normalize_match_keys

logger = logging.getLogger(__name__)


DEFAULT_TIMEOUT = 10
TOURNAMENT_ID_PATTERN = re.compile(r'^[A-Za-z0-9_-]+$')
STATUS_ORDER = (MatchStatus.SCHEDULED, MatchStatus.LIVE, MatchStatus.COMPLETED)


def parse_records(records, parser, kind):
    """Parse API records, skipping the ones that cannot be read."""
    parsed = []
    for record in records:
        try:
            parsed.append(parser(record))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Skipping unreadable {kind} record {record!r}: {e}")
    return parsed


class TournamentService(ABC):
    @abstractmethod
    def list_matches(self, tournament_id) -> List[Match]:
        ...

    @abstractmethod
    def list_teams(self, tournament_id) -> List[Team]:
        ...

    @abstractmethod
    def list_groups(self, tournament_id) -> Dict[str, List[Any]]:
        """Existing assignments as {group label: [team ids]}."""

    @abstractmethod
    def commit_group_assignment(self, tournament_id, assignments: List[GroupAssignment]) -> None:
        """Replace the tournament's group partition. Repeating the same payload is harmless."""

    @abstractmethod
    def generate_group_matches(self, tournament_id, groups: List[Dict[str, Any]], best_of: int = 1) -> None:
        ...

    @abstractmethod
    def generate_bracket(self, tournament_id) -> None:
        ...

    @abstractmethod
    def update_match(self, match_id, patch: Dict[str, Any]) -> Match:
        ...


class HttpTournamentService(TournamentService):
    def __init__(self, base_url: str, token: Optional[str] = None, timeout: float = DEFAULT_TIMEOUT,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({'Content-Type': 'application/json'})
        if token:
            self.session.headers.update({'Authorization': f'Bearer {token}'})

    def _request(self, method: str, path: str, json=None):
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, json=json, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f"{method} {url} failed: {e}")
            raise RemoteServiceError(f"Could not reach tournament service: {e}") from e

        if not response.ok:
            message = f"{method} {path} failed with status {response.status_code}"
            try:
                body = response.json()
                if isinstance(body, dict) and body.get('error'):
                    message = body['error']
            except ValueError:
                pass
            logger.warning(f"{method} {url} returned {response.status_code}: {message}")
            raise RemoteServiceError(message, status_code=response.status_code)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise RemoteServiceError(f"Invalid JSON from {path}", status_code=response.status_code) from e

    def list_matches(self, tournament_id) -> List[Match]:
        data = self._request('GET', f'/tournaments/{tournament_id}/matches')
        return parse_records(data, Match.from_dict, 'match') if isinstance(data, list) else []

    def list_teams(self, tournament_id) -> List[Team]:
        data = self._request('GET', f'/tournaments/{tournament_id}/teams')
        return parse_records(data, Team.from_dict, 'team') if isinstance(data, list) else []

    def list_groups(self, tournament_id) -> Dict[str, List[Any]]:
        data = self._request('GET', f'/tournaments/{tournament_id}/groups')
        groups = {}
        if not isinstance(data, dict):
            return groups
        for group in data.get('groups', []):
            if not isinstance(group, dict) or group.get('name') is None:
                logger.warning(f"Skipping unreadable group record {group!r}")
                continue
            groups[str(group['name'])] = [
                t.get('id') if isinstance(t, dict) else t for t in group.get('teams') or []
            ]
        return groups

    def commit_group_assignment(self, tournament_id, assignments: List[GroupAssignment]) -> None:
        self._request('POST', f'/tournaments/{tournament_id}/groups/assign',
                      json={'assignments': [a.to_dict() for a in assignments]})

    def generate_group_matches(self, tournament_id, groups: List[Dict[str, Any]], best_of: int = 1) -> None:
        self._request('POST', f'/tournaments/{tournament_id}/generate-groups',
                      json={'groups': groups, 'bestOf': best_of})

    def generate_bracket(self, tournament_id) -> None:
        self._request('POST', f'/tournaments/{tournament_id}/generate-bracket')

    def update_match(self, match_id, patch: Dict[str, Any]) -> Match:
        data = self._request('PUT', f'/matches/{match_id}', json=patch)
        try:
            return Match.from_dict(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise RemoteServiceError(f'Unreadable match returned for {match_id}: {e}') from e


def validate_match_patch(match: Match, patch: Dict[str, Any]) -> Match:
    """Apply a partial update to a match, rejecting illegal results."""
    merged = match.to_dict()
    merged.update(normalize_match_keys(patch))
    merged['id'] = match.id
    try:
        updated = Match.from_dict(merged, strict=True)
    except (TypeError, ValueError) as e:
        raise ValidationError(f'Invalid match data: {e}') from e

    if match.is_completed and updated.status != MatchStatus.COMPLETED:
        raise ValidationError(f'Match {match.id} is already completed.')
    if STATUS_ORDER.index(updated.status) < STATUS_ORDER.index(match.status):
        raise ValidationError(
            f'Match {match.id} cannot go back from {match.status.value} to {updated.status.value}.')
    if updated.score_a < 0 or updated.score_b < 0:
        raise ValidationError('Scores cannot be negative.')
    if updated.winner_id is not None and updated.winner_id not in (updated.team_a_id, updated.team_b_id):
        raise ValidationError('The winner must be one of the two teams.')
    return updated


class YamlTournamentService(TournamentService):
    """
    Local stand-in for the league API: one <tournament_id>.yaml per tournament
    holding 'teams', 'matches' and 'groups'.
    """

    def __init__(self, data_dir: str, lock_timeout: float = 10):
        self.data_dir = data_dir
        os.makedirs(data_dir, exist_ok=True)
        self._lock = FileLock(os.path.join(data_dir, '.lock'), timeout=lock_timeout)

    def _file_path(self, tournament_id) -> str:
        if not TOURNAMENT_ID_PATTERN.match(str(tournament_id)):
            raise ValidationError(f'Invalid tournament id "{tournament_id}".')
        return os.path.join(self.data_dir, f'{tournament_id}.yaml')

    def _load(self, tournament_id) -> Dict[str, Any]:
        path = self._file_path(tournament_id)
        if not os.path.exists(path):
            raise RemoteServiceError(f'Tournament "{tournament_id}" not found.', status_code=404)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise RemoteServiceError(f'Failed to parse {path}: {e}') from e
        data.setdefault('teams', [])
        data.setdefault('matches', [])
        data.setdefault('groups', {})
        return data

    def _save(self, tournament_id, data: Dict[str, Any]) -> None:
        with open(self._file_path(tournament_id), 'w', encoding='utf-8') as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)

    def save_tournament(self, tournament_id, teams: List[Team], matches: List[Match],
                        groups: Optional[Dict[str, List[Any]]] = None) -> None:
        """Write a whole tournament, e.g. when importing fixtures."""
        with self._lock:
            self._save(tournament_id, {
                'teams': [t.to_dict() for t in teams],
                'matches': [m.to_dict() for m in matches],
                'groups': groups or {},
            })

    def list_matches(self, tournament_id) -> List[Match]:
        with self._lock:
            data = self._load(tournament_id)
        return parse_records(data['matches'], Match.from_dict, 'match')

    def list_teams(self, tournament_id) -> List[Team]:
        with self._lock:
            data = self._load(tournament_id)
        return parse_records(data['teams'], Team.from_dict, 'team')

    def list_groups(self, tournament_id) -> Dict[str, List[Any]]:
        with self._lock:
            data = self._load(tournament_id)
        return {str(name): list(ids or []) for name, ids in data['groups'].items()}

    def commit_group_assignment(self, tournament_id, assignments: List[GroupAssignment]) -> None:
        groups: Dict[str, List[Any]] = {}
        seen = set()
        for assignment in assignments:
            if assignment.team_id in seen:
                raise ValidationError(f'Team {assignment.team_id} appears twice in the assignment.')
            seen.add(assignment.team_id)
            if assignment.group_name is not None:
                groups.setdefault(assignment.group_name, []).append(assignment.team_id)

        with self._lock:
            data = self._load(tournament_id)
            known = {t.get('id') for t in data['teams'] if isinstance(t, dict)}
            unknown = seen - known
            if unknown:
                raise ValidationError(f'Unknown teams in assignment: {sorted(map(str, unknown))}')
            data['groups'] = groups
            self._save(tournament_id, data)

    def generate_group_matches(self, tournament_id, groups: List[Dict[str, Any]], best_of: int = 1) -> None:
        raise RemoteServiceError('Group match generation is not supported by the local store.', status_code=501)

    def generate_bracket(self, tournament_id) -> None:
        raise RemoteServiceError('Bracket generation is not supported by the local store.', status_code=501)

    def update_match(self, match_id, patch: Dict[str, Any]) -> Match:
        with self._lock:
            for filename in sorted(os.listdir(self.data_dir)):
                if not filename.endswith('.yaml'):
                    continue
                tournament_id = filename[:-len('.yaml')]
                if not TOURNAMENT_ID_PATTERN.match(tournament_id):
                    continue
                data = self._load(tournament_id)
                for i, raw in enumerate(data['matches']):
                    if str(raw.get('id')) != str(match_id):
                        continue
                    updated = validate_match_patch(Match.from_dict(raw), patch)
                    data['matches'][i] = updated.to_dict()
                    self._save(tournament_id, data)
                    return updated
        raise RemoteServiceError(f'Match "{match_id}" not found.', status_code=404)
