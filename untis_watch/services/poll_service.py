"""Poll loop: session lifecycle, change detection and delivery"""
import asyncio
from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from enum import Enum
from typing import List, Optional, Tuple

from ..errors import AuthError, DeliveryError, FetchError, MessageRejectedError, PersistenceError
from ..storage.database import Database
from ..storage.models import EntityType, Lesson, Session, Timegrid
from ..utils.logger import setup_logger
from .card_renderer import NotificationCard, batch_cards, render_card
from .diff_engine import diff
from .untis_client import UntisClient
from .webhook_client import WebhookClient

logger = setup_logger(__name__)

LOOKBEHIND = timedelta(hours=24)
LOOKAHEAD = timedelta(days=14)


class SessionState(Enum):
    NO_SESSION = "no_session"
    ACTIVE = "active"


@dataclass(frozen=True)
class PendingNotification:
    """A rendered card and the lesson version to store once it is delivered"""
    card: NotificationCard
    lesson: Lesson


@dataclass(frozen=True)
class TickResult:
    """Summary of one completed tick"""
    fetched: int
    new_items: int
    changed: int
    delivered: int


class PollService:
    """Periodically fetches the timetable and reports changed lessons"""

    def __init__(
        self,
        untis_client: UntisClient,
        database: Database,
        webhook_client: WebhookClient,
        entity_id: Optional[int] = None,
        interval: int = 60,
        tick_timeout: float = 300,
        message_content: Optional[str] = None,
        tz: Optional[tzinfo] = None,
        prune_days: int = 30
    ):
        """
        Initialize poll service

        Args:
            untis_client: WebUntis client
            database: Snapshot store
            webhook_client: Webhook used for notifications
            entity_id: Class to watch; the session's own class if None
            interval: Seconds between tick starts
            tick_timeout: Seconds after which a running tick is abandoned
            message_content: Text attached to the first message of a tick
            tz: School timezone, host local time if None
            prune_days: Age in days after which stored lessons are removed, 0 to keep all
        """
        self.untis = untis_client
        self.database = database
        self.webhook = webhook_client
        self.entity_id = entity_id
        self.interval = interval
        self.tick_timeout = tick_timeout
        self.message_content = message_content
        self.tz = tz
        self.prune_days = prune_days

        self.session: Optional[Session] = None
        self.timegrid: Optional[Timegrid] = None
        self.running = False
        self._entity_resolved = False
        self._last_prune: Optional[date] = None
        self._lock = asyncio.Lock()

    @property
    def state(self) -> SessionState:
        return SessionState.ACTIVE if self.session is not None else SessionState.NO_SESSION

    async def start(self):
        """Run ticks until stopped, the first one immediately"""
        self.running = True
        loop = asyncio.get_running_loop()
        logger.info(f"Starting poll loop (tick every {self.interval}s)")

        while self.running:
            started = loop.time()
            self._prune_if_due()
            await self.tick()

            remaining = self.interval - (loop.time() - started)
            if self.running and remaining > 0:
                await asyncio.sleep(remaining)

    def stop(self):
        """Stop the poll loop after the current tick"""
        self.running = False
        logger.info("Stopping poll loop")

    async def tick(self) -> Optional[TickResult]:
        """
        Run one poll cycle unless another one is still in flight

        Failures end the tick and reset the session; only PersistenceError
        propagates.

        Returns:
            TickResult, or None if the tick failed or was skipped
        """
        if self._lock.locked():
            logger.warning("Previous tick still running, skipping this one")
            return None

        async with self._lock:
            try:
                return await asyncio.wait_for(self._run_tick(), timeout=self.tick_timeout)
            except PersistenceError:
                raise
            except asyncio.TimeoutError:
                logger.error(f"Tick did not finish within {self.tick_timeout}s")
            except (AuthError, FetchError) as e:
                logger.error(f"Tick failed: {e}")
            except Exception as e:
                logger.error(f"Unexpected error during tick: {e}", exc_info=True)

            # We assume that our session might have gotten revoked
            await self._reset_session()
            return None

    async def _run_tick(self) -> TickResult:
        if self.session is None:
            await self._login()

        now = datetime.now(self.tz) if self.tz else datetime.now().astimezone()
        logger.info("Fetching timetable")
        lessons = await asyncio.to_thread(
            self.untis.fetch_timetable,
            now - LOOKBEHIND,
            now + LOOKAHEAD,
            self.entity_id,
            EntityType.CLASS
        )
        logger.info(f"Fetched {len(lessons)} items")

        self.timegrid = await self._fetch_timegrid()

        pending, new_items = self._detect_changes(lessons)
        if new_items > 0:
            logger.info(f"Discovered {new_items} new timetable entries")

        delivered = await self._deliver(pending)
        return TickResult(
            fetched=len(lessons),
            new_items=new_items,
            changed=len(pending),
            delivered=delivered
        )

    async def _login(self):
        session = await asyncio.to_thread(self.untis.login)
        self.session = session
        logger.info(
            f"Logged in with session {session.session_id}: "
            f"Class {session.class_id} / User {session.person_id} ({session.person_type})"
        )

        if not self._entity_resolved:
            if self.entity_id is None:
                if session.class_id is None:
                    raise AuthError("No class configured and the session has no default class")
                self.entity_id = session.class_id
            self._entity_resolved = True
            await self._log_selected_entity()

    async def _log_selected_entity(self):
        try:
            entities = await asyncio.to_thread(self.untis.list_entities)
        except (AuthError, FetchError) as e:
            logger.warning(f"Could not look up class {self.entity_id}: {e}")
            return

        selected = next((e for e in entities if e.id == self.entity_id), None)
        if selected:
            logger.info(f"Selected class: {selected.name} ({selected.id})")
        else:
            logger.warning(f"Selected class {self.entity_id} is not in the school's class list")

    async def _fetch_timegrid(self) -> Optional[Timegrid]:
        try:
            return await asyncio.to_thread(self.untis.fetch_timegrid)
        except (AuthError, FetchError) as e:
            logger.warning(f"Could not fetch timegrid, showing absolute times: {e}")
            return None

    def _detect_changes(self, lessons: List[Lesson]) -> Tuple[List[PendingNotification], int]:
        """
        Diff fetched lessons against the snapshot store

        Lessons seen for the first time are stored right away and never
        reported. Changed lessons are stored only after delivery.

        Returns:
            (pending notifications in fetch order, number of new lessons)
        """
        pending = []
        new_items = 0

        for lesson in lessons:
            if not self.database.has(lesson.id):
                self.database.set(lesson.id, lesson)
                new_items += 1
                continue

            stored = self.database.get(lesson.id)
            change_set = diff(stored, lesson)
            if not change_set:
                continue

            logger.info(
                f"Timetable update detected for lesson {lesson.id}: "
                f"{', '.join(c.field.label for c in change_set.changes)}"
            )
            card = render_card(change_set, lesson, self.timegrid, self.tz)
            pending.append(PendingNotification(card=card, lesson=lesson))

        return pending, new_items

    async def _deliver(self, pending: List[PendingNotification]) -> int:
        """
        Send pending cards in batches and store the delivered lessons

        A batch Discord refuses outright is logged and its lessons are stored
        anyway, so it cannot block later ticks. Any other failure stops
        delivery; the lessons of that batch and all later ones stay unstored
        and are reported again on the next tick.

        Returns:
            Number of delivered cards
        """
        messages = batch_cards([p.card for p in pending], self.message_content)
        delivered = 0
        offset = 0

        for message in messages:
            batch = pending[offset:offset + len(message.cards)]
            try:
                await self.webhook.send_with_retry(message)
            except MessageRejectedError as e:
                lesson_ids = ", ".join(item.lesson.id for item in batch)
                logger.error(f"Dropping {len(batch)} notification(s) for lessons {lesson_ids}: {e}")
            except DeliveryError as e:
                logger.error(f"Delivery failed, {len(pending) - offset} notification(s) will be retried: {e}")
                break
            else:
                delivered += len(batch)
            offset += len(batch)

            for item in batch:
                self.database.set(item.lesson.id, item.lesson)

        return delivered

    async def _reset_session(self):
        """Forget the session and log out best-effort"""
        self.session = None
        try:
            await asyncio.to_thread(self.untis.logout)
        except Exception as e:
            logger.error(f"Logout failed: {e}")

    def _prune_if_due(self):
        if self.prune_days <= 0 or self._last_prune == date.today():
            return
        removed = self.database.prune_old_data(days=self.prune_days)
        self._last_prune = date.today()
        if removed:
            logger.info(f"Pruned {removed} lessons older than {self.prune_days} days")
