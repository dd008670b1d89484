"""
E2E test configuration.

Runs the API against the SQL storage gateway and the offline heuristic
collaborator, so complete flows exercise real persistence and scoring.
"""
import pytest

from app.services.mock_logic import HeuristicAnalysisCollaborator


@pytest.fixture
def storage(sql_storage):
    return sql_storage


@pytest.fixture
def collaborator():
    return HeuristicAnalysisCollaborator()
