"""
Pytest configuration and shared fixtures.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from untis_watch.services.untis_client import UntisClient
from untis_watch.services.webhook_client import WebhookClient
from untis_watch.storage.database import Database
from untis_watch.storage.models import Entity, Lesson, Session


def make_lesson_data(lesson_id=1, **overrides):
    """Timetable item as returned by getTimetable."""
    data = {
        "id": lesson_id,
        "date": 20240315,
        "startTime": 800,
        "endTime": 845,
        "kl": [{"id": 42, "name": "5a", "longname": "Class 5a"}],
        "su": [{"id": 7, "name": "MA", "longname": "Mathematics"}],
        "ro": [{"id": 1, "name": "R1", "longname": "Room One"}],
    }
    data.update(overrides)
    return data


def make_lesson(lesson_id=1, **overrides):
    return Lesson.from_api(make_lesson_data(lesson_id, **overrides))


@pytest.fixture
def lesson_factory():
    """Factory building lessons from provider-style keyword overrides."""
    return make_lesson


@pytest.fixture
def database(tmp_path):
    """Snapshot store in a temporary directory."""
    return Database(db_path=str(tmp_path / "timetable.db"))


@pytest.fixture
def mock_untis_client():
    """WebUntis client that logs in successfully and returns no lessons."""
    client = MagicMock(spec=UntisClient)
    client.login.return_value = Session(session_id="abc123", class_id=42, person_id=9, person_type=5)
    client.list_entities.return_value = [Entity(id=42, name="5a", long_name="Class 5a")]
    client.fetch_timetable.return_value = []
    client.fetch_timegrid.return_value = []
    return client


@pytest.fixture
def mock_webhook_client():
    """Webhook client that accepts every message."""
    return AsyncMock(spec=WebhookClient)
