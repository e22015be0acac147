"""
Shared pytest fixtures for tournament matchmaker tests.

Running tests:
    pytest tests/
"""
import pytest
import sys
import os

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from core.models import Player, SkillField, SkillValue, Tournament
from core.storage import MatchStore


def make_player(uuid, *skill_values, name=None):
    """Build a player with numeric skills named skill1, skill2, ..."""
    skills = [SkillValue(f'skill{i + 1}', 'numeric', value) for i, value in enumerate(skill_values)]
    return Player(uuid=uuid, name=name or uuid.upper(), email=f'{uuid}@example.com', skills=skills)


@pytest.fixture
def skill_fields():
    return [SkillField('skill1', 'numeric'), SkillField('skill2', 'numeric')]


@pytest.fixture
def sample_players():
    """Four players listed out of skill order: expected seeding is d, b, c, a."""
    return [
        make_player('a', 1, 5),
        make_player('b', 3, 1),
        make_player('c', 2, 9),
        make_player('d', 4, 0),
    ]


@pytest.fixture
def five_players():
    return [make_player(uuid, 10 - i) for i, uuid in enumerate(['a', 'b', 'c', 'd', 'e'])]


@pytest.fixture
def store(tmp_path):
    """An empty match store in a temporary directory."""
    return MatchStore(str(tmp_path))


@pytest.fixture
def single_tournament(store, skill_fields):
    return store.create_tournament(Tournament(
        id=1, name='Spring Open', skill_fields=skill_fields, tournament_type='single'
    ))


@pytest.fixture
def client(tmp_path, monkeypatch):
    """Flask test client backed by a temporary data directory."""
    import app as app_module
    monkeypatch.setattr(app_module, 'DATA_DIR', str(tmp_path))
    app_module.app.config['TESTING'] = True
    with app_module.app.test_client() as client:
        yield client
