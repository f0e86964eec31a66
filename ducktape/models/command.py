from datetime import date as CalendarDate
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class CommandFamily(str, Enum):
    """Command family decided once by the verb normalizer"""
    CALENDAR_CREATE = "calendar"
    REMINDER_CREATE = "reminder"
    NOTE_CREATE = "note"
    UNRECOGNIZED = "unrecognized"


class Frequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class ClockTime(BaseModel):
    """Time of day, always in 24-hour form"""
    hour: int = Field(ge=0, le=23)
    minute: int = Field(default=0, ge=0, le=59)

    model_config = {"frozen": True}

    def plus_hour(self) -> "ClockTime":
        # Only the clock wraps, the date never rolls forward
        return ClockTime(hour=(self.hour + 1) % 24, minute=self.minute)

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


class RecurrenceDescriptor(BaseModel):
    frequency: Frequency
    interval: int = Field(default=1, ge=1)
    end_date: Optional[CalendarDate] = None
    occurrence_count: Optional[int] = Field(default=None, ge=1)
    days_of_week: List[int] = Field(default_factory=list)  # 0 = Sunday

    def add_days(self, days) -> None:
        merged = set(self.days_of_week)
        merged.update(d for d in days if 0 <= d <= 6)
        self.days_of_week = sorted(merged)


class DraftCommand(BaseModel):
    """Partially filled command record, enhanced stage by stage"""
    family: CommandFamily = CommandFamily.UNRECOGNIZED
    title: Optional[str] = None
    date: Optional[CalendarDate] = None
    start_time: Optional[ClockTime] = None
    end_time: Optional[ClockTime] = None
    target: Optional[str] = None
    invitees: List[str] = Field(default_factory=list)
    emails: List[str] = Field(default_factory=list)
    location: Optional[str] = None
    recurrence: Optional[RecurrenceDescriptor] = None
    is_virtual_meeting: bool = False

    # Free text the extraction stages read; never rendered
    source_text: str = Field(default="", exclude=True)
    hints: List[str] = Field(default_factory=list, exclude=True)

    def to_dict(self):
        data = self.model_dump(mode="json")
        data["start_time"] = str(self.start_time) if self.start_time else None
        data["end_time"] = str(self.end_time) if self.end_time else None
        return data
