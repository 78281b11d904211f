"""Records persisted in local storage.

Field names on the wire are camelCase, matching the layout the stored JSON
has always had; the dataclasses use snake_case attributes. ``from_dict``
raises ValueError for anything that does not have the expected shape.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional

GENDERS = ("male", "female", "other")
_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def _require(data: dict, key: str, kind):
    if key not in data:
        raise ValueError(f"missing field {key!r}")
    value = data[key]
    # bool is an int subclass; never accept it for numeric fields
    if kind in (int, float, (int, float)) and isinstance(value, bool):
        raise ValueError(f"field {key!r} must be numeric")
    if not isinstance(value, kind):
        raise ValueError(f"field {key!r} has wrong type {type(value).__name__}")
    return value


def _str_list(data: dict, key: str) -> list[str]:
    values = _require(data, key, list)
    if not all(isinstance(v, str) for v in values):
        raise ValueError(f"field {key!r} must be a list of strings")
    return list(values)


def calculate_age(birthday: str, today: Optional[date] = None) -> int:
    """Whole years between ``birthday`` (YYYY-MM-DD) and today."""
    dob = datetime.strptime(birthday, "%Y-%m-%d").date()
    today = today or date.today()
    return today.year - dob.year - ((today.month, today.day) < (dob.month, dob.day))


@dataclass(frozen=True)
class User:
    email: str
    password: str
    first_name: str
    last_name: str
    name: str
    gender: str
    birthday: str
    age: int

    def to_dict(self) -> dict:
        return {
            "firstName": self.first_name,
            "lastName": self.last_name,
            "name": self.name,
            "gender": self.gender,
            "birthday": self.birthday,
            "age": self.age,
            "email": self.email,
            "password": self.password,
        }

    def public_dict(self) -> dict:
        data = self.to_dict()
        data.pop("password")
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "User":
        if not isinstance(data, dict):
            raise ValueError("user record must be an object")
        gender = _require(data, "gender", str)
        if gender not in GENDERS:
            raise ValueError(f"unknown gender {gender!r}")
        return cls(
            email=_require(data, "email", str),
            password=_require(data, "password", str),
            first_name=_require(data, "firstName", str),
            last_name=_require(data, "lastName", str),
            name=_require(data, "name", str),
            gender=gender,
            birthday=_require(data, "birthday", str),
            age=_require(data, "age", int),
        )


@dataclass
class SymptomEntry:
    date: str
    symptoms: list[str] = field(default_factory=list)
    sleep_hours: float = 0
    diet_quality: int = 3
    exercise_minutes: float = 0
    medications: list[str] = field(default_factory=list)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.date,
            "symptoms": list(self.symptoms),
            "sleepHours": self.sleep_hours,
            "dietQuality": self.diet_quality,
            "exerciseMinutes": self.exercise_minutes,
            "medications": list(self.medications),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "SymptomEntry":
        if not isinstance(data, dict):
            raise ValueError("entry record must be an object")
        return cls(
            id=_require(data, "id", str),
            date=_require(data, "date", str),
            symptoms=_str_list(data, "symptoms"),
            sleep_hours=_require(data, "sleepHours", (int, float)),
            diet_quality=_require(data, "dietQuality", int),
            exercise_minutes=_require(data, "exerciseMinutes", (int, float)),
            medications=_str_list(data, "medications"),
        )

    def mentions(self, symptom: str) -> bool:
        needle = symptom.lower()
        return any(needle in s.lower() for s in self.symptoms)


@dataclass
class Medication:
    name: str
    time: str
    taken_today: bool = False
    weekly_status: dict[str, Optional[bool]] = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "time": self.time,
            "takenToday": self.taken_today,
            "weeklyStatus": dict(self.weekly_status),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Medication":
        if not isinstance(data, dict):
            raise ValueError("medication record must be an object")
        time_str = _require(data, "time", str)
        if not _TIME_RE.match(time_str):
            raise ValueError(f"bad medication time {time_str!r}")
        # Older records predate the weekly log
        weekly = data.get("weeklyStatus") or {}
        if not isinstance(weekly, dict) or not all(
            v is None or isinstance(v, bool) for v in weekly.values()
        ):
            raise ValueError("weeklyStatus must map dates to true/false/null")
        return cls(
            id=_require(data, "id", str),
            name=_require(data, "name", str),
            time=time_str,
            taken_today=_require(data, "takenToday", bool),
            weekly_status=dict(weekly),
        )


def is_valid_time(value: str) -> bool:
    return bool(_TIME_RE.match(value or ""))
