"""Data models for lessons, timegrids and provider sessions"""
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, List, Optional, Tuple


class EntityType(IntEnum):
    """Element types understood by the WebUntis timetable API"""
    CLASS = 1
    TEACHER = 2
    SUBJECT = 3
    ROOM = 4
    STUDENT = 5


@dataclass(frozen=True)
class ShortData:
    """Reference to a subject or room as embedded in a lesson"""
    id: int
    name: str = ""
    longname: str = ""

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "ShortData":
        return cls(
            id=data.get("id"),
            name=data.get("name", ""),
            longname=data.get("longname", "")
        )


@dataclass(frozen=True)
class Lesson:
    """
    One scheduled lesson as returned by getTimetable

    ``raw`` keeps the provider payload verbatim so the snapshot store
    can persist exactly what was fetched.
    """
    id: str
    date: int
    start_time: int
    end_time: int
    subjects: Tuple[ShortData, ...] = ()
    rooms: Tuple[ShortData, ...] = ()
    info: Optional[str] = None
    subst_text: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Lesson":
        """
        Build a lesson from a provider timetable item

        Args:
            data: Timetable item (keys id, date, startTime, endTime, su, ro,
                info, substText)

        Returns:
            Lesson instance
        """
        return cls(
            id=str(data["id"]),
            date=int(data["date"]),
            start_time=int(data["startTime"]),
            end_time=int(data["endTime"]),
            subjects=tuple(ShortData.from_api(s) for s in data.get("su", [])),
            rooms=tuple(ShortData.from_api(r) for r in data.get("ro", [])),
            info=data.get("info"),
            subst_text=data.get("substText"),
            raw=dict(data)
        )

    def to_api(self) -> Dict[str, Any]:
        """Return the provider payload this lesson was built from"""
        if self.raw:
            return dict(self.raw)

        payload: Dict[str, Any] = {
            "id": self.id,
            "date": self.date,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "su": [{"id": s.id, "name": s.name, "longname": s.longname} for s in self.subjects],
            "ro": [{"id": r.id, "name": r.name, "longname": r.longname} for r in self.rooms],
        }
        if self.info is not None:
            payload["info"] = self.info
        if self.subst_text is not None:
            payload["substText"] = self.subst_text
        return payload


@dataclass(frozen=True)
class TimeUnit:
    """Named lesson period within a school day"""
    name: str
    start_time: int
    end_time: int


@dataclass(frozen=True)
class TimegridDay:
    """Lesson periods of one weekday (WebUntis numbering, Sunday = 1)"""
    day: int
    time_units: Tuple[TimeUnit, ...] = ()

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "TimegridDay":
        return cls(
            day=int(data["day"]),
            time_units=tuple(
                TimeUnit(
                    name=str(unit.get("name", "")),
                    start_time=int(unit["startTime"]),
                    end_time=int(unit["endTime"])
                )
                for unit in data.get("timeUnits", [])
            )
        )


@dataclass(frozen=True)
class Session:
    """Session information returned by a successful login"""
    session_id: str
    class_id: Optional[int] = None
    person_id: Optional[int] = None
    person_type: Optional[int] = None


@dataclass(frozen=True)
class Entity:
    """A class the timetable can be scoped to"""
    id: int
    name: str
    long_name: str = ""
    active: bool = True

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Entity":
        return cls(
            id=int(data["id"]),
            name=data.get("name", ""),
            long_name=data.get("longName", ""),
            active=bool(data.get("active", True))
        )


Timegrid = List[TimegridDay]
