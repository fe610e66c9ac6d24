"""
Tests for the entry point and class discovery mode.
"""

import logging
from unittest.mock import MagicMock

import pytest

from untis_watch.errors import AuthError
from untis_watch import main as main_module
from untis_watch.main import UntisWatcher
from untis_watch.services.untis_client import UntisClient
from untis_watch.storage.models import Entity, Session
from untis_watch.utils.logger import set_log_level


@pytest.fixture
def watcher():
    config = MagicMock()
    config.school = "demo-school"
    config.username = "user"
    config.password = "secret"
    config.base_url = "mese.webuntis.com"
    config.client_name = "untis-watch"
    config.webhook_id = "123456789"
    config.webhook_token = "token"
    watcher = UntisWatcher(config)
    watcher.untis_client = MagicMock(spec=UntisClient)
    return watcher


class TestListClasses:
    """Test cases for class discovery."""

    def test_lists_classes_and_logs_out(self, watcher, caplog):
        watcher.untis_client.login.return_value = Session(session_id="abc")
        watcher.untis_client.list_entities.return_value = [
            Entity(id=42, name="5a", long_name="Class 5a"),
            Entity(id=43, name="5b", long_name="Class 5b", active=False),
        ]

        with caplog.at_level(logging.INFO, logger="untis_watch.main"):
            assert watcher.list_classes() == 0

        assert "42 => Class 5a (5a)" in caplog.text
        assert "43 => Class 5b (5b) (Inactive)" in caplog.text
        watcher.untis_client.logout.assert_called_once()

    def test_login_failure_exit_code(self, watcher):
        watcher.untis_client.login.side_effect = AuthError("bad credentials")

        assert watcher.list_classes() == 1


class TestLogging:
    """Test cases for the entry point logger."""

    def test_logger_follows_log_level(self):
        previous = main_module.logger.level
        try:
            set_log_level("DEBUG")

            assert main_module.logger.name == "untis_watch.main"
            assert main_module.logger.level == logging.DEBUG
        finally:
            set_log_level(previous)
