"""Main entry point for untis-watch"""
import asyncio
import signal
import sys

from .config import Config
from .errors import AuthError, FetchError
from .storage.database import Database
from .services.untis_client import UntisClient
from .services.webhook_client import WebhookClient
from .services.poll_service import PollService
from .utils.logger import setup_logger, set_log_level
from .utils.timecodec import get_timezone

logger = setup_logger("untis_watch.main")


class UntisWatcher:
    """Main orchestrator"""

    def __init__(self, config: Config):
        """Initialize components"""
        self.config = config
        self.running = False

        self.untis_client = UntisClient(
            school=config.school,
            username=config.username,
            password=config.password,
            base_url=config.base_url,
            client_name=config.client_name
        )
        self.webhook_client = WebhookClient(
            webhook_id=config.webhook_id,
            webhook_token=config.webhook_token
        )
        self.database = None
        self.poll_service = None

        # Setup signal handlers for graceful shutdown
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

    def _signal_handler(self, signum, frame):
        """Handle shutdown signals"""
        logger.info(f"Received signal {signum}, shutting down gracefully...")
        self.running = False
        if self.poll_service:
            self.poll_service.stop()

    def list_classes(self) -> int:
        """Log every class of the school and return an exit code"""
        try:
            session = self.untis_client.login()
            logger.info(f"Logged in with session {session.session_id}")
            classes = self.untis_client.list_entities()
        except (AuthError, FetchError) as e:
            logger.error(f"Could not list classes: {e}")
            return 1

        try:
            self.untis_client.logout()
        except AuthError as e:
            logger.error(f"Logout failed: {e}")

        logger.info(
            "Available classes:\n" + "\n".join(
                f"{c.id} => {c.long_name} ({c.name}){'' if c.active else ' (Inactive)'}"
                for c in classes
            )
        )
        return 0

    async def start(self):
        """Start watching the timetable"""
        self.running = True
        logger.info("Starting untis-watch...")

        self.database = Database(db_path=self.config.db_path)
        logger.info(f"Snapshot store at {self.config.db_path} holds {self.database.count()} lessons")

        self.poll_service = PollService(
            untis_client=self.untis_client,
            database=self.database,
            webhook_client=self.webhook_client,
            entity_id=self.config.class_id,
            interval=self.config.poll_interval,
            tick_timeout=self.config.tick_timeout,
            message_content=self.config.message_content,
            tz=get_timezone(self.config.timezone),
            prune_days=self.config.prune_days
        )

        await self.webhook_client.start()
        poll_task = asyncio.create_task(self.poll_service.start())

        try:
            # Run until stopped
            while self.running and not poll_task.done():
                await asyncio.sleep(1)
        finally:
            logger.info("Stopping services...")
            self.poll_service.stop()
            if not poll_task.done():
                poll_task.cancel()
                try:
                    await poll_task
                except asyncio.CancelledError:
                    pass

            await self.webhook_client.close()
            logger.info("Stopped")

        # Surface a fatal error raised by the poll loop
        if poll_task.done() and not poll_task.cancelled():
            poll_task.result()


async def run(config: Config):
    """Run the watcher until it is stopped"""
    watcher = UntisWatcher(config)
    await watcher.start()


def main():
    """Main entry point"""
    try:
        config = Config()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    set_log_level(config.log_level)

    if config.get_classes:
        sys.exit(UntisWatcher(config).list_classes())

    try:
        asyncio.run(run(config))
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
