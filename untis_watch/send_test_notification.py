"""Send a sample timetable update to the configured webhook"""
import argparse
import asyncio
import sys
from datetime import datetime, timedelta

from .config import Config
from .errors import DeliveryError
from .storage.models import Lesson, ShortData
from .services.card_renderer import NotificationCard, batch_cards, render_card
from .services.diff_engine import diff
from .services.webhook_client import WebhookClient
from .utils.logger import setup_logger
from .utils.timecodec import get_timezone

logger = setup_logger("untis_watch.send_test_notification")


def create_test_card(lesson_id: str, info: str, timezone=None) -> NotificationCard:
    """
    Build a card for a made-up room change in tomorrow's first lesson

    Args:
        lesson_id: ID shown in the card footer
        info: New info text of the lesson
        timezone: School timezone, host local time if None

    Returns:
        Notification card
    """
    tz = get_timezone(timezone)
    tomorrow = (datetime.now(tz) if tz else datetime.now()) + timedelta(days=1)

    stored = Lesson(
        id=lesson_id,
        date=int(tomorrow.strftime("%Y%m%d")),
        start_time=800,
        end_time=845,
        subjects=(ShortData(id=1, name="MA", longname="Mathematics"),),
        rooms=(ShortData(id=1, name="R1", longname="Room One"),),
        info=""
    )
    incoming = Lesson(
        id=stored.id,
        date=stored.date,
        start_time=stored.start_time,
        end_time=stored.end_time,
        subjects=stored.subjects,
        rooms=(ShortData(id=2, name="R2", longname="Room Two"),),
        info=info
    )
    return render_card(diff(stored, incoming), incoming, None, tz)


async def send_test_card(card: NotificationCard, config: Config) -> bool:
    """Deliver a single card through the configured webhook"""
    webhook_client = WebhookClient(
        webhook_id=config.webhook_id,
        webhook_token=config.webhook_token
    )
    await webhook_client.start()
    try:
        for message in batch_cards([card], config.message_content):
            await webhook_client.send_with_retry(message)
        return True
    except DeliveryError as e:
        logger.error(f"✗ Failed to send test notification: {e}")
        return False
    finally:
        await webhook_client.close()


def main():
    """Main entry point"""
    parser = argparse.ArgumentParser(
        description="Send a sample timetable update notification"
    )
    parser.add_argument(
        "--lesson-id",
        type=str,
        default="test-lesson",
        help="Lesson ID shown in the footer (default: 'test-lesson')"
    )
    parser.add_argument(
        "--info",
        type=str,
        default="Room changed due to flooding",
        help="New info text of the sample lesson"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only log the rendered card, do not send it"
    )

    args = parser.parse_args()

    # Load configuration
    try:
        config = Config()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    card = create_test_card(args.lesson_id, args.info, config.timezone)
    logger.info(f"{card.title}: {card.description} [{card.footer}]")
    for group in card.field_groups():
        logger.info(f"  {group.field.label}: {group.old!r} -> {group.new!r}")

    if args.dry_run:
        return

    if asyncio.run(send_test_card(card, config)):
        logger.info("✓ Test notification sent successfully!")
    else:
        sys.exit(1)


if __name__ == "__main__":
    main()
