"""Rendering of change sets into notification cards and outbound batches"""
from dataclasses import dataclass
from datetime import tzinfo
from typing import List, Optional, Sequence, Tuple

from ..storage.models import Lesson, Timegrid
from ..utils.timecodec import Edge, discord_timestamp, format_for_display, to_timestamp
from .diff_engine import EMPTY_PLACEHOLDER, ChangeSet, ChangedField, FieldChange

CARD_TITLE = "Timetable update"
CARD_COLOR = 0xFF6033
MAX_CARDS_PER_MESSAGE = 10
# Discord limit on the combined text of all embeds in one message
MAX_MESSAGE_CHARS = 6000
# Eight values of this length plus labels still fit one message
MAX_FIELD_VALUE_LENGTH = 700
SPACER = "\u200b"


@dataclass(frozen=True)
class NotificationCard:
    """
    Immutable notification for one changed lesson

    Each watched field has its own optional slot; a slot is set only when
    that field changed.
    """
    lesson_id: str
    description: str
    subjects: Optional[FieldChange] = None
    rooms: Optional[FieldChange] = None
    info: Optional[FieldChange] = None
    subst_text: Optional[FieldChange] = None
    title: str = CARD_TITLE
    color: int = CARD_COLOR

    @property
    def footer(self) -> str:
        return f"Lesson ID: {self.lesson_id}"

    def field_groups(self) -> Tuple[FieldChange, ...]:
        """Changed fields in display order"""
        return tuple(
            group for group in (self.subjects, self.rooms, self.info, self.subst_text)
            if group is not None
        )

    def fields(self) -> Tuple[Tuple[str, str], ...]:
        """(name, value) pairs as shown: Old, New and a spacer per changed field"""
        rows = []
        for group in self.field_groups():
            rows.append((f"Old {group.field.label}", field_value(group.old)))
            rows.append((f"New {group.field.label}", field_value(group.new)))
            rows.append((SPACER, SPACER))
        return tuple(rows)

    def text_length(self) -> int:
        """Characters this card counts towards the per-message embed limit"""
        return (
            len(self.title) + len(self.description) + len(self.footer)
            + sum(len(name) + len(value) for name, value in self.fields())
        )


@dataclass(frozen=True)
class OutboundMessage:
    """One webhook send: up to ten cards plus optional message content"""
    cards: Tuple[NotificationCard, ...]
    content: Optional[str] = None


def field_value(value: str) -> str:
    """Display value of a field: placeholder when empty, cut to the field limit"""
    value = value or EMPTY_PLACEHOLDER
    if len(value) > MAX_FIELD_VALUE_LENGTH:
        value = value[:MAX_FIELD_VALUE_LENGTH - 1] + "…"
    return value


def describe_time_range(
    lesson: Lesson,
    timegrid: Optional[Timegrid] = None,
    tz: Optional[tzinfo] = None
) -> str:
    """
    Build the card description: date, time range and relative time

    Args:
        lesson: Lesson the card is about
        timegrid: School timegrid, or None for absolute times
        tz: School timezone, or None for host local time

    Returns:
        Description line such as '<t:..:D>, lesson 3 (<t:..:R>)'
    """
    start = to_timestamp(lesson.date, lesson.start_time, tz)
    end = to_timestamp(lesson.date, lesson.end_time, tz)

    start_text = format_for_display(start, Edge.START, timegrid)
    end_text = format_for_display(end, Edge.END, timegrid)
    if start_text == end_text:
        time_range = start_text
    else:
        time_range = f"{start_text} to {end_text}"

    return (
        f"{discord_timestamp(start, 'D')}, {time_range} "
        f"({discord_timestamp(start, 'R')})"
    )


def render_card(
    change_set: ChangeSet,
    lesson: Lesson,
    timegrid: Optional[Timegrid] = None,
    tz: Optional[tzinfo] = None
) -> NotificationCard:
    """Build the notification card for a non-empty change set"""
    return NotificationCard(
        lesson_id=lesson.id,
        description=describe_time_range(lesson, timegrid, tz),
        subjects=change_set.get(ChangedField.SUBJECTS),
        rooms=change_set.get(ChangedField.ROOMS),
        info=change_set.get(ChangedField.INFO),
        subst_text=change_set.get(ChangedField.SUBST_TEXT)
    )


def batch_cards(
    cards: Sequence[NotificationCard],
    content: Optional[str] = None,
    batch_size: int = MAX_CARDS_PER_MESSAGE,
    max_chars: int = MAX_MESSAGE_CHARS
) -> List[OutboundMessage]:
    """
    Split cards into consecutive messages

    A message holds at most ``batch_size`` cards whose combined text stays
    within ``max_chars``. Order is preserved. ``content`` is attached to the
    first message only. No cards means no messages.
    """
    batches: List[List[NotificationCard]] = []
    current: List[NotificationCard] = []
    current_chars = 0

    for card in cards:
        length = card.text_length()
        if current and (len(current) >= batch_size or current_chars + length > max_chars):
            batches.append(current)
            current, current_chars = [], 0
        current.append(card)
        current_chars += length

    if current:
        batches.append(current)

    return [
        OutboundMessage(cards=tuple(batch), content=content if index == 0 else None)
        for index, batch in enumerate(batches)
    ]
