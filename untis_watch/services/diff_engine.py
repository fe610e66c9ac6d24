"""Change detection between the stored and the fetched version of a lesson"""
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Tuple

from ..storage.models import Lesson, ShortData

EMPTY_PLACEHOLDER = "(None)"


class ChangedField(Enum):
    """Lesson fields that are watched for changes, with their display label"""
    SUBJECTS = "subjects"
    ROOMS = "rooms"
    INFO = "info text"
    SUBST_TEXT = "substitution text"

    @property
    def label(self) -> str:
        return self.value


@dataclass(frozen=True)
class FieldChange:
    """Old and new display value of one changed field"""
    field: ChangedField
    old: str
    new: str


@dataclass(frozen=True)
class ChangeSet:
    """All watched fields that differ for one lesson"""
    lesson_id: str
    changes: Tuple[FieldChange, ...] = ()

    def __bool__(self) -> bool:
        return bool(self.changes)

    def __len__(self) -> int:
        return len(self.changes)

    def get(self, changed_field: ChangedField) -> Optional[FieldChange]:
        for change in self.changes:
            if change.field is changed_field:
                return change
        return None


def render_short_data(items: Iterable[ShortData]) -> str:
    """
    Render subjects or rooms one per line.

    Two lists count as equal exactly when their renderings are equal, so
    order matters.
    """
    return "\n".join(f"{item.longname} ({item.name}) (ID: {item.id})" for item in items)


def display_text(value: Optional[str]) -> str:
    """Free text as shown to users, with a placeholder when empty"""
    return value or EMPTY_PLACEHOLDER


def diff(stored: Lesson, incoming: Lesson) -> ChangeSet:
    """
    Compare two versions of the same lesson

    Args:
        stored: Version from the snapshot store
        incoming: Freshly fetched version

    Returns:
        ChangeSet listing subjects, rooms, info and substitution text changes
        in that order; empty when nothing watched changed
    """
    changes = []

    old_subjects = render_short_data(stored.subjects)
    new_subjects = render_short_data(incoming.subjects)
    if old_subjects != new_subjects:
        changes.append(FieldChange(ChangedField.SUBJECTS, old_subjects, new_subjects))

    old_rooms = render_short_data(stored.rooms)
    new_rooms = render_short_data(incoming.rooms)
    if old_rooms != new_rooms:
        changes.append(FieldChange(ChangedField.ROOMS, old_rooms, new_rooms))

    # raw comparison: None and "" are different values, both shown as the placeholder
    if stored.info != incoming.info:
        changes.append(FieldChange(ChangedField.INFO, display_text(stored.info), display_text(incoming.info)))

    if stored.subst_text != incoming.subst_text:
        changes.append(FieldChange(
            ChangedField.SUBST_TEXT,
            display_text(stored.subst_text),
            display_text(incoming.subst_text)
        ))

    return ChangeSet(lesson_id=incoming.id, changes=tuple(changes))
