"""Configuration loading and validation"""
import logging
import os
from pathlib import Path
from typing import Optional

import pytz
from dotenv import load_dotenv

from .utils.logger import setup_logger

logger = setup_logger(__name__)

# Load environment variables from .env file
load_dotenv()


class Config:
    """Application configuration"""

    def __init__(self):
        """Load and validate configuration"""
        # WebUntis credentials
        self.username = self._get_required("USERNAME")
        self.password = self._get_required("PASSWORD")
        self.school = self._get_required("SCHOOL")
        self.base_url = self._get_required("BASEURL")
        self.client_name = os.getenv("UNTIS_CLIENT_NAME", "untis-watch")

        # Class selection
        class_str = os.getenv("CLASS", "").strip()
        self.class_id: Optional[int] = None
        if class_str:
            try:
                self.class_id = int(class_str)
            except ValueError:
                raise ValueError("CLASS must be a numeric class ID")
        self.get_classes = os.getenv("GET_CLASSES", "false").lower() == "true"

        # Discord webhook
        self.webhook_id = self._get_required("WEBHOOK_ID")
        self.webhook_token = self._get_required("WEBHOOK_TOKEN")
        self.message_content = os.getenv("MESSAGE_CONTENT") or None

        # Storage
        self.db_dir = os.getenv("DB_DIR") or "data"
        self.prune_days = int(os.getenv("PRUNE_DAYS", "30"))

        # Polling
        self.poll_interval = int(os.getenv("POLL_INTERVAL", "60"))
        self.tick_timeout = int(os.getenv("TICK_TIMEOUT", "300"))
        self.timezone = os.getenv("TIMEZONE") or None
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()

        self._validate()
        logger.info("Configuration loaded successfully")

    @property
    def db_path(self) -> str:
        return str(Path(self.db_dir) / "timetable.db")

    def _get_required(self, key: str) -> str:
        """Get required environment variable"""
        value = os.getenv(key)
        if not value:
            raise ValueError(f"Required environment variable {key} is not set")
        return value

    def _validate(self):
        """Validate configuration values"""
        if self.poll_interval < 5:
            raise ValueError("POLL_INTERVAL must be at least 5 seconds")

        if self.tick_timeout <= 0:
            raise ValueError("TICK_TIMEOUT must be positive")

        if self.prune_days < 0:
            raise ValueError("PRUNE_DAYS must be non-negative")

        # Validate webhook ID is numeric
        try:
            int(self.webhook_id)
        except ValueError:
            raise ValueError("WEBHOOK_ID must be a numeric webhook ID")

        if self.timezone and self.timezone not in pytz.all_timezones_set:
            raise ValueError(f"TIMEZONE '{self.timezone}' is not a known timezone")

        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ValueError(f"LOG_LEVEL '{self.log_level}' is not a valid log level")

        logger.info(f"WebUntis server: {self.base_url} (school {self.school})")
        logger.info(f"Poll interval: {self.poll_interval} seconds")
        if self.class_id is not None:
            logger.info(f"Class: {self.class_id}")
        else:
            logger.info("Class: default class of the logged in user")
        if self.timezone:
            logger.info(f"Timezone: {self.timezone}")
