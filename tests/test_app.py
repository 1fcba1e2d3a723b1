"""
Unit tests for the Flask web application.
"""
import pytest
import sys
import os

import yaml

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))


def _open_workspace(client, tournament_id='spring'):
    response = client.post(f'/api/tournaments/{tournament_id}/workspaces')
    assert response.status_code == 201
    return response.get_json()['workspace_id']


def _team_ids(teams):
    return [t['id'] for t in teams]


class TestReadRoutes:
    """Tests for the standings, bracket and match views."""

    def test_standings(self, client):
        response = client.get('/api/tournaments/spring/standings')
        assert response.status_code == 200
        groups = response.get_json()['groups']
        assert list(groups) == ['A', 'B']
        assert [row['team']['id'] for row in groups['A']] == [1, 4, 3, 2]
        assert groups['A'][0]['points'] == 6
        assert groups['A'][0]['history'] == ['W', 'W']

    def test_bracket(self, client):
        data = client.get('/api/tournaments/spring/bracket').get_json()
        assert [r['name'] for r in data['rounds']] == ["Quarterfinals", "Semifinals", "Grand Finals"]
        assert [m['id'] for m in data['rounds'][0]['matches']] == [301, 302, 303, 304]
        assert data['rounds'][2]['matches'][0]['team1']['name'] == "TBD"
        assert data['champion'] is None

    def test_matches_filtered_by_stage(self, client):
        data = client.get('/api/tournaments/spring/matches?stage=playoffs').get_json()
        assert len(data['matches']) == 7
        assert all(m['stage'] == 'playoffs' for m in data['matches'])

    def test_matches_unknown_stage(self, client):
        response = client.get('/api/tournaments/spring/matches?stage=finals')
        assert response.status_code == 400
        assert response.get_json()['success'] is False

    def test_unknown_tournament(self, client):
        response = client.get('/api/tournaments/autumn/standings')
        assert response.status_code == 404

    def test_invalid_tournament_id(self, client):
        response = client.get('/api/tournaments/bad.id/bracket')
        assert response.status_code == 400

    def test_league_status_spellings(self, client, yaml_service):
        """Stored statuses outside the usual three still render every view."""
        path = os.path.join(yaml_service.data_dir, 'spring.yaml')
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
        statuses = {101: 'played', 104: 'postponed', 311: 'pending', 321: 'UPCOMING'}
        for match in data['matches']:
            if match['id'] in statuses:
                match['status'] = statuses[match['id']]
        with open(path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(data, f)

        response = client.get('/api/tournaments/spring/standings')
        assert response.status_code == 200
        groups = response.get_json()['groups']
        assert [row['team']['id'] for row in groups['A']] == [1, 4, 3, 2]

        response = client.get('/api/tournaments/spring/bracket')
        assert response.status_code == 200
        semifinal = response.get_json()['rounds'][1]['matches'][0]
        assert semifinal['status'] == 'scheduled'

        response = client.get('/api/tournaments/spring/matches')
        assert response.status_code == 200
        assert len(response.get_json()['matches']) == 13


class TestWorkspaceRoutes:
    """Tests for the group assignment editing session."""

    def test_open_seeds_from_groups(self, client):
        response = client.post('/api/tournaments/spring/workspaces')
        workspace = response.get_json()['workspace']
        assert workspace['state'] == 'idle'
        assert [g['name'] for g in workspace['groups']] == ['Group A']
        assert _team_ids(workspace['groups'][0]['teams']) == [1, 2, 3, 4]
        assert _team_ids(workspace['pool']) == [5, 6, 7, 8]

    def test_open_unknown_tournament(self, client):
        assert client.post('/api/tournaments/autumn/workspaces').status_code == 404

    def test_get_and_close(self, client):
        workspace_id = _open_workspace(client)
        response = client.get(f'/api/workspaces/{workspace_id}')
        assert response.get_json()['tournament_id'] == 'spring'

        assert client.delete(f'/api/workspaces/{workspace_id}').status_code == 200
        assert client.get(f'/api/workspaces/{workspace_id}').status_code == 404

    def test_drag_and_drop(self, client):
        workspace_id = _open_workspace(client)
        data = client.post(f'/api/workspaces/{workspace_id}/drag', json={'team_id': 5}).get_json()
        assert data['workspace']['state'] == 'dragging'
        assert data['workspace']['drag_item']['id'] == 5

        data = client.post(f'/api/workspaces/{workspace_id}/drop', json={'target': 'group-A'}).get_json()
        assert data['changed'] is True
        assert data['workspace']['state'] == 'idle'
        assert _team_ids(data['workspace']['groups'][0]['teams']) == [1, 2, 3, 4, 5]

    def test_drop_without_drag(self, client):
        workspace_id = _open_workspace(client)
        response = client.post(f'/api/workspaces/{workspace_id}/drop', json={'target': 'pool'})
        assert response.status_code == 400

    def test_cancel_drag(self, client):
        workspace_id = _open_workspace(client)
        client.post(f'/api/workspaces/{workspace_id}/drag', json={'team_id': 1})
        data = client.post(f'/api/workspaces/{workspace_id}/cancel').get_json()
        assert data['workspace']['state'] == 'idle'
        assert _team_ids(data['workspace']['groups'][0]['teams']) == [1, 2, 3, 4]

    def test_move_to_pool(self, client):
        workspace_id = _open_workspace(client)
        data = client.post(f'/api/workspaces/{workspace_id}/move', json={'team_id': 4, 'target': 'pool'}).get_json()
        assert data['workspace']['pool'][-1]['id'] == 4
        assert data['workspace']['unassigned_count'] == 5

    def test_add_and_remove_group(self, client):
        workspace_id = _open_workspace(client)
        response = client.post(f'/api/workspaces/{workspace_id}/groups')
        assert response.status_code == 201
        assert response.get_json()['group_id'] == 'group-B'

        response = client.delete(f'/api/workspaces/{workspace_id}/groups/group-B')
        assert response.status_code == 200
        assert len(response.get_json()['workspace']['groups']) == 1

    def test_remove_non_empty_group_rejected(self, client):
        workspace_id = _open_workspace(client)
        response = client.delete(f'/api/workspaces/{workspace_id}/groups/group-A')
        assert response.status_code == 400
        assert 'still has 4 team(s)' in response.get_json()['error']

    def test_unassign(self, client):
        workspace_id = _open_workspace(client)
        data = client.post(f'/api/workspaces/{workspace_id}/unassign', json={'team_id': 2}).get_json()
        assert data['changed'] is True
        assert _team_ids(data['workspace']['groups'][0]['teams']) == [1, 3, 4]

    def test_unknown_workspace(self, client):
        assert client.post('/api/workspaces/nope/drag', json={'team_id': 1}).status_code == 404


class TestCommitRoute:

    def test_commit_persists_and_closes(self, client, yaml_service):
        workspace_id = _open_workspace(client)
        client.post(f'/api/workspaces/{workspace_id}/groups')
        for team_id in (5, 6, 7, 8):
            client.post(f'/api/workspaces/{workspace_id}/move', json={'team_id': team_id, 'target': 'group-B'})

        response = client.post(f'/api/workspaces/{workspace_id}/commit')
        assert response.status_code == 200
        assignments = response.get_json()['assignments']
        assert {'teamId': 5, 'groupName': 'B'} in assignments
        assert yaml_service.list_groups('spring') == {'A': [1, 2, 3, 4], 'B': [5, 6, 7, 8]}
        assert client.get(f'/api/workspaces/{workspace_id}').status_code == 404

    def test_commit_sends_pool_teams_unassigned(self, client):
        workspace_id = _open_workspace(client)
        assignments = client.post(f'/api/workspaces/{workspace_id}/commit').get_json()['assignments']
        assert {'teamId': 8, 'groupName': None} in assignments
        assert len(assignments) == 8

    def test_commit_twice_is_idempotent(self, client, yaml_service):
        first = _open_workspace(client)
        client.post(f'/api/workspaces/{first}/commit')
        second = _open_workspace(client)
        client.post(f'/api/workspaces/{second}/commit')
        assert yaml_service.list_groups('spring') == {'A': [1, 2, 3, 4]}

    def test_failed_commit_keeps_workspace(self, client, monkeypatch, yaml_service):
        from tournament_core.errors import RemoteServiceError

        workspace_id = _open_workspace(client)

        def fail(tournament_id, assignments):
            raise RemoteServiceError('league API down', status_code=503)

        monkeypatch.setattr(yaml_service, 'commit_group_assignment', fail)
        response = client.post(f'/api/workspaces/{workspace_id}/commit')
        assert response.status_code == 502
        data = client.get(f'/api/workspaces/{workspace_id}').get_json()
        assert data['workspace']['is_saving'] is False


class TestGenerateRoutes:

    def test_schedule_needs_two_teams_per_group(self, client):
        workspace_id = _open_workspace(client)
        client.post(f'/api/workspaces/{workspace_id}/groups')
        client.post(f'/api/workspaces/{workspace_id}/move', json={'team_id': 5, 'target': 'group-B'})
        response = client.post(f'/api/workspaces/{workspace_id}/generate-schedule', json={'best_of': 3})
        assert response.status_code == 400
        assert 'Group B' in response.get_json()['error']

    @pytest.mark.parametrize('best_of', [0, 'three'])
    def test_schedule_rejects_bad_best_of(self, client, best_of):
        workspace_id = _open_workspace(client)
        response = client.post(f'/api/workspaces/{workspace_id}/generate-schedule', json={'best_of': best_of})
        assert response.status_code == 400

    def test_schedule_on_local_store(self, client):
        """The local store cannot pair teams, which surfaces as an upstream error."""
        workspace_id = _open_workspace(client)
        response = client.post(f'/api/workspaces/{workspace_id}/generate-schedule', json={'best_of': 1})
        assert response.status_code == 502

    def test_schedule_forwards_groups(self, client, monkeypatch, yaml_service):
        calls = []
        monkeypatch.setattr(yaml_service, 'generate_group_matches',
                            lambda tid, groups, best_of: calls.append((tid, groups, best_of)))
        workspace_id = _open_workspace(client)
        response = client.post(f'/api/workspaces/{workspace_id}/generate-schedule', json={'best_of': 3})
        assert response.status_code == 200
        assert calls == [('spring', [{'name': 'A', 'team_ids': [1, 2, 3, 4]}], 3)]

    def test_generate_bracket_on_local_store(self, client):
        assert client.post('/api/tournaments/spring/generate-bracket').status_code == 502


class TestUpdateMatchRoute:

    def test_update_match(self, client):
        response = client.put('/api/matches/104', json={'status': 'completed', 'scoreA': 2, 'winnerId': 2})
        assert response.status_code == 200
        assert response.get_json()['match']['winner_id'] == 2

        groups = client.get('/api/tournaments/spring/standings').get_json()['groups']
        team_2 = next(row for row in groups['A'] if row['team']['id'] == 2)
        assert team_2['wins'] == 1

    def test_empty_patch(self, client):
        assert client.put('/api/matches/104', json={}).status_code == 400

    def test_illegal_winner(self, client):
        response = client.put('/api/matches/104', json={'winner_id': 7})
        assert response.status_code == 400

    def test_unknown_match(self, client):
        assert client.put('/api/matches/999', json={'score_a': 1}).status_code == 404
