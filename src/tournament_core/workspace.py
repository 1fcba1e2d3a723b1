"""
Interactive team-to-group assignment.

A workspace holds a pool of unassigned teams and a list of groups. Every
team known to the workspace lives in exactly one of them. Moves follow a
small drag-and-drop state machine:

    IDLE --begin_move--> DRAGGING --complete_move / cancel_move--> IDLE

The workspace is created per editing session, mutated in memory, and
thrown away by the caller after a successful commit or on cancel.
"""
import logging
import string
import threading
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .errors import (
    CommitInProgressError,
    GroupNotEmptyError,
    InvalidTransitionError,
    TournamentError,
    ValidationError,
)
from .models import Group, GroupAssignment, Team

logger = logging.getLogger(__name__)


POOL = "team-pool"
GROUP_ID_PREFIX = "group-"
GROUP_NAME_PREFIX = "Group "
MIN_TEAMS_PER_GROUP = 2


class WorkspaceState(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"


def group_label(index: int) -> str:
    """Spreadsheet-style label for a zero-based index: A..Z, AA, AB, ..."""
    letters = string.ascii_uppercase
    label = ""
    index += 1
    while index > 0:
        index, remainder = divmod(index - 1, len(letters))
        label = letters[remainder] + label
    return label


def storage_key(group_name: str) -> str:
    """Strip the display prefix: "Group A" -> "A". Other names pass through unchanged."""
    if group_name.startswith(GROUP_NAME_PREFIX):
        return group_name[len(GROUP_NAME_PREFIX):]
    return group_name


class GroupAssignmentWorkspace:
    def __init__(self, teams: Iterable[Team], groups: Optional[Dict[str, List[Any]]] = None):
        """
        Seed the workspace.

        groups maps storage labels ("A") to team ids, as returned by the
        service. Teams not listed in any group start in the pool. Unknown or
        repeated ids in the seed are skipped so the partition holds from the
        start.
        """
        self._lock = threading.RLock()
        self._teams: Dict[Any, Team] = {}
        for team in teams:
            if team.id in self._teams:
                logger.warning(f"Duplicate team id {team.id!r} in workspace seed, keeping the first")
                continue
            self._teams[team.id] = team

        self.groups: List[Group] = []
        placed = set()
        for label, team_ids in sorted((groups or {}).items()):
            group = Group(id=f"{GROUP_ID_PREFIX}{label}", name=f"{GROUP_NAME_PREFIX}{label}")
            for team_id in team_ids:
                if team_id not in self._teams:
                    logger.warning(f"Group {label} references unknown team {team_id!r}, skipping")
                    continue
                if team_id in placed:
                    logger.warning(f"Team {team_id!r} assigned to more than one group, keeping the first")
                    continue
                group.teams.append(self._teams[team_id])
                placed.add(team_id)
            self.groups.append(group)

        self.pool: List[Team] = [t for t in self._teams.values() if t.id not in placed]
        self.state = WorkspaceState.IDLE
        self.drag_item: Optional[Team] = None
        self.is_saving = False

    def __repr__(self):
        return f"GroupAssignmentWorkspace(state={self.state.value}, groups={len(self.groups)}, pool={len(self.pool)})"

    @property
    def unassigned_count(self) -> int:
        return len(self.pool)

    def get_group(self, group_id) -> Group:
        for group in self.groups:
            if group.id == group_id:
                return group
        raise ValidationError(f'Group "{group_id}" does not exist.')

    def _team(self, team_id) -> Team:
        if team_id not in self._teams:
            raise ValidationError(f'Team "{team_id}" is not part of this workspace.')
        return self._teams[team_id]

    def locate(self, team_id):
        """Return POOL or the id of the group holding the team."""
        with self._lock:
            self._team(team_id)
            if any(t.id == team_id for t in self.pool):
                return POOL
            for group in self.groups:
                if group.contains(team_id):
                    return group.id
            raise TournamentError(f"Team {team_id!r} is neither pooled nor grouped")

    # Drag and drop

    def begin_move(self, team_id) -> Team:
        with self._lock:
            if self.state != WorkspaceState.IDLE:
                raise InvalidTransitionError(f'Cannot pick up a team while {self.drag_item.name} is being moved.')
            team = self._team(team_id)
            self.drag_item = team
            self.state = WorkspaceState.DRAGGING
            return team

    def complete_move(self, target) -> bool:
        """
        Drop the dragged team on a group id or POOL.

        Returns True when the partition changed, False when the team already
        sat in the target. An unknown target cancels the drag and raises.
        """
        with self._lock:
            if self.state != WorkspaceState.DRAGGING:
                raise InvalidTransitionError('No team is being moved.')
            team = self.drag_item
            try:
                destination = self.pool if target == POOL else self.get_group(target).teams
            except ValidationError:
                self.cancel_move()
                raise

            self.drag_item = None
            self.state = WorkspaceState.IDLE

            if any(t.id == team.id for t in destination):
                return False

            self._detach(team.id)
            destination.append(team)
            logger.debug(f"Moved team {team.id!r} to {target}")
            return True

    def cancel_move(self) -> None:
        with self._lock:
            if self.state != WorkspaceState.DRAGGING:
                raise InvalidTransitionError('No team is being moved.')
            self.drag_item = None
            self.state = WorkspaceState.IDLE

    def move(self, team_id, target) -> bool:
        """Pick up and drop in one step."""
        with self._lock:
            self.begin_move(team_id)
            return self.complete_move(target)

    def _detach(self, team_id) -> None:
        # In place: callers may hold a reference to the destination list
        self.pool[:] = [t for t in self.pool if t.id != team_id]
        for group in self.groups:
            group.teams[:] = [t for t in group.teams if t.id != team_id]

    # Groups

    def add_group(self) -> Group:
        with self._lock:
            used = {storage_key(g.name) for g in self.groups}
            index = 0
            while group_label(index) in used:
                index += 1
            label = group_label(index)
            group = Group(id=f"{GROUP_ID_PREFIX}{label}", name=f"{GROUP_NAME_PREFIX}{label}")
            self.groups.append(group)
            return group

    def remove_group(self, group_id) -> Group:
        with self._lock:
            group = self.get_group(group_id)
            if group.teams:
                raise GroupNotEmptyError(
                    f'{group.name} still has {len(group.teams)} team(s). Move them out before deleting it.')
            self.groups = [g for g in self.groups if g.id != group_id]
            return group

    def remove_from_group(self, team_id) -> bool:
        """Send a grouped team back to the pool. Returns False if it was already pooled."""
        with self._lock:
            team = self._team(team_id)
            for group in self.groups:
                if group.contains(team_id):
                    self._detach(team_id)
                    self.pool.append(team)
                    return True
            return False

    # Commit

    def assignments(self) -> List[GroupAssignment]:
        """Snapshot of the partition: grouped teams first, then pool teams with no group."""
        with self._lock:
            payload = [
                GroupAssignment(team_id=t.id, group_name=storage_key(g.name))
                for g in self.groups
                for t in g.teams
            ]
            payload.extend(GroupAssignment(team_id=t.id, group_name=None) for t in self.pool)
            return payload

    def groups_snapshot(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [
                {'name': storage_key(g.name), 'team_ids': [t.id for t in g.teams]}
                for g in self.groups
            ]

    def check_schedule_ready(self) -> None:
        """Reject scheduling when there are no groups or a group is too small to play."""
        with self._lock:
            if not self.groups:
                raise ValidationError('No groups found. Assign teams and save the assignments first.')
            too_small = [g.name for g in self.groups if len(g.teams) < MIN_TEAMS_PER_GROUP]
            if too_small:
                raise ValidationError(
                    f'Cannot generate: {", ".join(too_small)} have less than {MIN_TEAMS_PER_GROUP} teams.')

    def _start_saving(self) -> Tuple[GroupAssignment, ...]:
        with self._lock:
            if self.is_saving:
                raise CommitInProgressError('Assignments are already being saved.')
            if not self.groups:
                raise ValidationError('Create at least one group before saving.')
            self.is_saving = True
            return tuple(self.assignments())

    def commit(self, service, tournament_id) -> List[GroupAssignment]:
        """
        Send the current partition to the service as one batch.

        The snapshot is taken when the call starts; moves made while it is in
        flight go into the next commit. On failure the workspace is left as
        it was and the commit can simply be repeated.
        """
        payload = self._start_saving()
        try:
            service.commit_group_assignment(tournament_id, list(payload))
        finally:
            with self._lock:
                self.is_saving = False
        logger.info(f"Committed {len(payload)} group assignments for tournament {tournament_id}")
        return list(payload)

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                'state': self.state.value,
                'drag_item': self.drag_item.to_dict() if self.drag_item else None,
                'groups': [g.to_dict() for g in self.groups],
                'pool': [t.to_dict() for t in self.pool],
                'unassigned_count': self.unassigned_count,
                'is_saving': self.is_saving,
            }
