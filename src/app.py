"""
Flask web application for the tournament dashboard.

Serves standings, bracket and group assignment workspaces as JSON for the
dashboard screens.
"""
import threading
import uuid
from functools import wraps

from flask import Flask, jsonify, request

from tournament_core.bracket import build_bracket, champion, playoff_matches
from tournament_core.config import build_service, load_config
from tournament_core.errors import RemoteServiceError, TournamentError, ValidationError
from tournament_core.models import filter_stage
from tournament_core.standings import calculate_group_standings
from tournament_core.workspace import POOL, GroupAssignmentWorkspace

app = Flask(__name__)

CONFIG = load_config()

_service = None
_service_lock = threading.Lock()

# Open editing sessions: {workspace_id: (tournament_id, workspace)}
_workspaces = {}
_workspaces_lock = threading.Lock()


def get_service():
    """Tournament service built from CONFIG on first use."""
    global _service
    with _service_lock:
        if _service is None:
            _service = build_service(CONFIG)
        return _service


def _error(message, status):
    return jsonify({'success': False, 'error': message}), status


def api_errors(f):
    """Turn engine exceptions into JSON error responses."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except ValidationError as e:
            return _error(str(e), 400)
        except RemoteServiceError as e:
            app.logger.warning(f'Tournament service error in {request.path}: {e}')
            status = 404 if e.status_code == 404 else 502
            return _error(str(e), status)
    return decorated_function


def _get_workspace(workspace_id):
    with _workspaces_lock:
        entry = _workspaces.get(workspace_id)
    if entry is None:
        return None, None
    return entry


def _workspace_response(workspace_id, workspace, **extra):
    data = {'success': True, 'workspace_id': workspace_id, 'workspace': workspace.to_dict()}
    data.update(extra)
    return jsonify(data)


def workspace_route(f):
    """Resolve <workspace_id> to (tournament_id, workspace) or answer 404."""
    @wraps(f)
    def decorated_function(workspace_id, *args, **kwargs):
        tournament_id, workspace = _get_workspace(workspace_id)
        if workspace is None:
            return _error(f'Workspace "{workspace_id}" not found.', 404)
        return f(workspace_id, tournament_id, workspace, *args, **kwargs)
    return decorated_function


# Read views

@app.route('/api/tournaments/<tournament_id>/matches', methods=['GET'])
@api_errors
def api_matches(tournament_id):
    """List matches, optionally filtered with ?stage=groups|playoffs|play-in."""
    matches = get_service().list_matches(tournament_id)
    stage = request.args.get('stage')
    if stage:
        try:
            matches = filter_stage(matches, stage)
        except ValueError:
            return _error(f'Unknown stage "{stage}".', 400)
    return jsonify({'matches': [m.to_dict() for m in matches]})


@app.route('/api/tournaments/<tournament_id>/standings', methods=['GET'])
@api_errors
def api_standings(tournament_id):
    service = get_service()
    matches = service.list_matches(tournament_id)
    teams = service.list_teams(tournament_id)
    standings = calculate_group_standings(matches, teams, CONFIG['history_limit'])
    return jsonify({
        'groups': {name: [row.to_dict() for row in rows] for name, rows in standings.items()},
    })


@app.route('/api/tournaments/<tournament_id>/bracket', methods=['GET'])
@api_errors
def api_bracket(tournament_id):
    service = get_service()
    matches = playoff_matches(service.list_matches(tournament_id))
    teams = service.list_teams(tournament_id)
    rounds = build_bracket(matches, teams, CONFIG['round_names'])
    winner = champion(rounds)
    return jsonify({
        'rounds': [r.to_dict() for r in rounds],
        'champion': winner._asdict() if winner else None,
    })


# Group assignment workspaces

@app.route('/api/tournaments/<tournament_id>/workspaces', methods=['POST'])
@api_errors
def api_open_workspace(tournament_id):
    """Start an editing session seeded from the current teams and groups."""
    service = get_service()
    teams = service.list_teams(tournament_id)
    try:
        groups = service.list_groups(tournament_id)
    except RemoteServiceError as e:
        app.logger.warning(f'Could not load groups for {tournament_id}, starting with every team unassigned: {e}')
        groups = {}

    workspace = GroupAssignmentWorkspace(teams, groups)
    workspace_id = uuid.uuid4().hex
    with _workspaces_lock:
        _workspaces[workspace_id] = (tournament_id, workspace)
    app.logger.info(f'Opened workspace {workspace_id} for tournament {tournament_id}')
    return _workspace_response(workspace_id, workspace), 201


@app.route('/api/workspaces/<workspace_id>', methods=['GET'])
@workspace_route
def api_get_workspace(workspace_id, tournament_id, workspace):
    return _workspace_response(workspace_id, workspace, tournament_id=tournament_id)


@app.route('/api/workspaces/<workspace_id>', methods=['DELETE'])
@workspace_route
def api_close_workspace(workspace_id, tournament_id, workspace):
    """Cancel the session. Nothing was persisted, so nothing is undone."""
    with _workspaces_lock:
        _workspaces.pop(workspace_id, None)
    return jsonify({'success': True})


def _target_from(data):
    target = data.get('target')
    return POOL if target in (None, '', 'pool', POOL) else target


@app.route('/api/workspaces/<workspace_id>/drag', methods=['POST'])
@workspace_route
@api_errors
def api_begin_move(workspace_id, tournament_id, workspace):
    data = request.get_json(silent=True) or {}
    workspace.begin_move(data.get('team_id'))
    return _workspace_response(workspace_id, workspace)


@app.route('/api/workspaces/<workspace_id>/drop', methods=['POST'])
@workspace_route
@api_errors
def api_complete_move(workspace_id, tournament_id, workspace):
    data = request.get_json(silent=True) or {}
    changed = workspace.complete_move(_target_from(data))
    return _workspace_response(workspace_id, workspace, changed=changed)


@app.route('/api/workspaces/<workspace_id>/cancel', methods=['POST'])
@workspace_route
@api_errors
def api_cancel_move(workspace_id, tournament_id, workspace):
    workspace.cancel_move()
    return _workspace_response(workspace_id, workspace)


@app.route('/api/workspaces/<workspace_id>/move', methods=['POST'])
@workspace_route
@api_errors
def api_move(workspace_id, tournament_id, workspace):
    data = request.get_json(silent=True) or {}
    changed = workspace.move(data.get('team_id'), _target_from(data))
    return _workspace_response(workspace_id, workspace, changed=changed)


@app.route('/api/workspaces/<workspace_id>/groups', methods=['POST'])
@workspace_route
@api_errors
def api_add_group(workspace_id, tournament_id, workspace):
    group = workspace.add_group()
    return _workspace_response(workspace_id, workspace, group_id=group.id), 201


@app.route('/api/workspaces/<workspace_id>/groups/<group_id>', methods=['DELETE'])
@workspace_route
@api_errors
def api_remove_group(workspace_id, tournament_id, workspace, group_id):
    workspace.remove_group(group_id)
    return _workspace_response(workspace_id, workspace)


@app.route('/api/workspaces/<workspace_id>/unassign', methods=['POST'])
@workspace_route
@api_errors
def api_remove_from_group(workspace_id, tournament_id, workspace):
    data = request.get_json(silent=True) or {}
    changed = workspace.remove_from_group(data.get('team_id'))
    return _workspace_response(workspace_id, workspace, changed=changed)


@app.route('/api/workspaces/<workspace_id>/commit', methods=['POST'])
@workspace_route
@api_errors
def api_commit_workspace(workspace_id, tournament_id, workspace):
    """Save the partition. The session ends on success and stays open on failure."""
    payload = workspace.commit(get_service(), tournament_id)
    with _workspaces_lock:
        _workspaces.pop(workspace_id, None)
    return jsonify({'success': True, 'assignments': [a.to_dict() for a in payload]})


@app.route('/api/workspaces/<workspace_id>/generate-schedule', methods=['POST'])
@workspace_route
@api_errors
def api_generate_group_matches(workspace_id, tournament_id, workspace):
    data = request.get_json(silent=True) or {}
    try:
        best_of = int(data.get('best_of', 1))
    except (TypeError, ValueError):
        return _error('best_of must be a number.', 400)
    if best_of < 1:
        return _error('best_of must be at least 1.', 400)

    workspace.check_schedule_ready()
    get_service().generate_group_matches(tournament_id, workspace.groups_snapshot(), best_of)
    app.logger.info(f'Generated group matches for tournament {tournament_id} (best of {best_of})')
    return jsonify({'success': True})


# Pass-through writes

@app.route('/api/tournaments/<tournament_id>/generate-bracket', methods=['POST'])
@api_errors
def api_generate_bracket(tournament_id):
    get_service().generate_bracket(tournament_id)
    app.logger.info(f'Generated bracket for tournament {tournament_id}')
    return jsonify({'success': True})


@app.route('/api/matches/<match_id>', methods=['PUT'])
@api_errors
def api_update_match(match_id):
    patch = request.get_json(silent=True)
    if not isinstance(patch, dict) or not patch:
        return _error('Nothing to update.', 400)
    match = get_service().update_match(match_id, patch)
    return jsonify({'success': True, 'match': match.to_dict()})


@app.errorhandler(TournamentError)
def handle_tournament_error(e):
    app.logger.error(f'Unhandled tournament error: {e}')
    return _error(str(e), 500)


if __name__ == '__main__':
    app.run(debug=True, port=5000)
