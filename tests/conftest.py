"""
Shared pytest fixtures for tournament dashboard tests.

Running tests:
    pytest tests/                  - full suite
"""
import pytest
import sys
import os

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from tournament_core.models import Match, MatchStatus, Stage, Team
from tournament_core.service import YamlTournamentService


@pytest.fixture
def sample_teams():
    """Eight teams, enough for two groups of four or a quarterfinal bracket."""
    return [
        Team(id=1, name="Sergipe Slayers", tag="SLY"),
        Team(id=2, name="Lagarto Kings", tag="LGT"),
        Team(id=3, name="Propria Punks", tag="PRP"),
        Team(id=4, name="Estancia Eagles", tag="EST"),
        Team(id=5, name="Aracaju Void", tag="AJU"),
        Team(id=6, name="Itabaiana Saints", tag="ITA"),
        Team(id=7, name="Barra Bulls", tag="BAR"),
        Team(id=8, name="Socorro Spirits", tag="SOC"),
    ]


@pytest.fixture
def group_a_matches():
    """Group A round robin: team 1 undefeated, one tie, one match still live."""
    return [
        Match(id=101, stage=Stage.GROUPS, group_name="A", round=1, match_index=0,
              team_a_id=1, team_b_id=2, score_a=2, score_b=0,
              status=MatchStatus.COMPLETED, winner_id=1),
        Match(id=102, stage=Stage.GROUPS, group_name="A", round=1, match_index=1,
              team_a_id=3, team_b_id=4, score_a=1, score_b=1,
              status=MatchStatus.COMPLETED),
        Match(id=103, stage=Stage.GROUPS, group_name="A", round=2, match_index=0,
              team_a_id=1, team_b_id=3, score_a=2, score_b=1,
              status=MatchStatus.COMPLETED, winner_id=1),
        Match(id=104, stage=Stage.GROUPS, group_name="A", round=2, match_index=1,
              team_a_id=2, team_b_id=4, score_a=1, score_b=1,
              status=MatchStatus.LIVE),
    ]


@pytest.fixture
def group_b_matches():
    return [
        Match(id=201, stage=Stage.GROUPS, group_name="B", round=1, match_index=0,
              team_a_id=5, team_b_id=6, score_a=0, score_b=2,
              status=MatchStatus.COMPLETED, winner_id=6),
        Match(id=202, stage=Stage.GROUPS, group_name="B", round=1, match_index=1,
              team_a_id=7, team_b_id=8, status=MatchStatus.SCHEDULED),
    ]


@pytest.fixture
def bracket_matches():
    """Eight team single elimination, quarterfinals played, one semifinal TBD."""
    def playoff(id, round, index, a, b, score_a=0, score_b=0, winner=None, status=MatchStatus.SCHEDULED):
        return Match(id=id, stage=Stage.PLAYOFFS, round=round, match_index=index,
                     team_a_id=a, team_b_id=b, score_a=score_a, score_b=score_b,
                     status=status, winner_id=winner)

    done = MatchStatus.COMPLETED
    # Listed out of slot order on purpose
    return [
        playoff(304, 1, 3, 7, 8, 2, 1, 7, done),
        playoff(301, 1, 0, 1, 2, 2, 0, 1, done),
        playoff(303, 1, 2, 5, 6, 0, 2, 6, done),
        playoff(302, 1, 1, 3, 4, 1, 2, 4, done),
        playoff(312, 2, 1, 6, 7),
        playoff(311, 2, 0, 1, 4, 1, 0, None, MatchStatus.LIVE),
        playoff(321, 3, 0, None, None),
    ]


@pytest.fixture
def yaml_service(tmp_path, sample_teams, group_a_matches, group_b_matches, bracket_matches):
    """Local tournament store seeded with tournament 'spring'."""
    service = YamlTournamentService(str(tmp_path / "data"))
    service.save_tournament(
        'spring',
        sample_teams,
        group_a_matches + group_b_matches + bracket_matches,
        groups={'A': [1, 2, 3, 4]},
    )
    return service


@pytest.fixture
def client(yaml_service, monkeypatch):
    """Flask test client backed by the seeded local store."""
    import app as app_module

    monkeypatch.setattr(app_module, '_service', yaml_service)
    monkeypatch.setattr(app_module, '_workspaces', {})
    app_module.app.config['TESTING'] = True
    with app_module.app.test_client() as client:
        yield client
