import logging
import re
from datetime import date, datetime
from typing import List, Optional

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from ..models.command import Frequency, RecurrenceDescriptor
from .time_resolver import CLOCK, CLOCK_WORD

logger = logging.getLogger(__name__)

UNIT_FREQUENCIES = {
    "day": Frequency.DAILY,
    "week": Frequency.WEEKLY,
    "month": Frequency.MONTHLY,
    "year": Frequency.YEARLY,
}

FREQUENCY_PATTERNS = [
    (Frequency.DAILY, re.compile(r'\b(?:daily|everyday|every\s+day|each\s+day)\b', re.IGNORECASE)),
    (Frequency.WEEKLY, re.compile(r'\b(?:weekly|every\s+week|each\s+week)\b', re.IGNORECASE)),
    (Frequency.MONTHLY, re.compile(r'\b(?:monthly|every\s+month|each\s+month)\b', re.IGNORECASE)),
    (Frequency.YEARLY, re.compile(r'\b(?:yearly|annually|every\s+year|each\s+year)\b', re.IGNORECASE)),
]

EVERY_N_RE = re.compile(r'\bevery\s+(\d+)\s+(day|week|month|year)s?\b', re.IGNORECASE)

# 0 = Sunday
DAY_NUMBERS = {
    "sunday": 0, "monday": 1, "tuesday": 2, "wednesday": 3,
    "thursday": 4, "friday": 5, "saturday": 6,
}
DAY_NAME = r'(?:' + '|'.join(DAY_NUMBERS) + r')s?'
DAY_LIST = DAY_NAME + r'(?:\s*(?:,\s*and|,|and|&)\s*' + DAY_NAME + r')*'
EVERY_DAYS_RE = re.compile(r'\b(?:every|each)\s+(?:other\s+)?(' + DAY_LIST + r')\b', re.IGNORECASE)
WEEKLY_ON_DAYS_RE = re.compile(r'\bweekly\s+on\s+(' + DAY_LIST + r')\b', re.IGNORECASE)
EVERY_WEEKDAY_RE = re.compile(r'\bevery\s+weekday\b', re.IGNORECASE)
WEEKDAYS = [1, 2, 3, 4, 5]
EVERY_OTHER_RE = re.compile(r'\bevery\s+other\s+(day|week|month|year|' + '|'.join(DAY_NUMBERS) + r')s?\b', re.IGNORECASE)

UNTIL_RE = re.compile(
    r'\buntil\s+(.+?)(?=\s+(?:at|with|for|and\s+invite|invite|called|every)\b|[,;]|$)',
    re.IGNORECASE,
)
COUNT_FOR_RE = re.compile(
    r'\bfor\s+(?:the\s+next\s+)?(\d{1,4})\s+(day|week|month|year)s?\b', re.IGNORECASE)
COUNT_TIMES_RE = re.compile(r'\b(\d{1,4})\s+times\b', re.IGNORECASE)

MAX_EXTRACTED_INTERVAL = 365

# "until 9:15am" ends the event, not the series
CLOCK_ONLY_RE = re.compile(r'(?:' + CLOCK_WORD + r'|' + CLOCK + r')', re.IGNORECASE)


def _days_from(phrase: str) -> List[int]:
    found = re.findall('|'.join(DAY_NUMBERS), phrase.lower())
    return sorted({DAY_NUMBERS[day] for day in found})


def parse_until(phrase: str, today: date) -> Optional[date]:
    """Parse an end date phrase; a month/day already past means next year"""
    if CLOCK_ONLY_RE.fullmatch(phrase.strip()):
        logger.debug(f"Ignoring clock time as until date: {phrase}")
        return None
    default = datetime(today.year, today.month, today.day)
    try:
        parsed = date_parser.parse(phrase, default=default, fuzzy=True).date()
    except (ValueError, OverflowError):
        logger.warning(f"Could not parse until date: {phrase}")
        return None
    if parsed < today and not re.search(r'\d{4}', phrase):
        parsed = parsed + relativedelta(years=1)
    return parsed


class RecurrenceInferencer:
    """Detect recurrence phrases and merge them into an existing descriptor.

    Only fields that are still unset are filled, so a draft that already
    carries an explicit --repeat keeps it. Bounds on interval and count are
    enforced later by the validator, not here.
    """

    def infer(
        self,
        text: str,
        today: date,
        existing: Optional[RecurrenceDescriptor] = None,
    ) -> Optional[RecurrenceDescriptor]:
        if not text:
            return existing

        frequency = existing.frequency if existing else None
        interval = None
        days: List[int] = []

        other = EVERY_OTHER_RE.search(text)
        every_n = EVERY_N_RE.search(text)
        if other:
            frequency = frequency or UNIT_FREQUENCIES.get(other.group(1).lower(), Frequency.WEEKLY)
            interval = 2
        elif every_n:
            frequency = frequency or UNIT_FREQUENCIES[every_n.group(2).lower()]
            value = int(every_n.group(1))
            if 1 <= value <= MAX_EXTRACTED_INTERVAL:
                interval = value
            else:
                logger.warning(f"Dropping recurrence interval out of range: {value}")

        if EVERY_WEEKDAY_RE.search(text):
            frequency = frequency or Frequency.WEEKLY
            days = list(WEEKDAYS)
        else:
            day_match = EVERY_DAYS_RE.search(text) or WEEKLY_ON_DAYS_RE.search(text)
            if day_match:
                frequency = frequency or Frequency.WEEKLY
                days = _days_from(day_match.group(1))

        if frequency is None:
            for candidate, pattern in FREQUENCY_PATTERNS:
                if pattern.search(text):
                    frequency = candidate
                    break

        count = None
        count_match = COUNT_FOR_RE.search(text)
        if count_match:
            count = int(count_match.group(1))
            frequency = frequency or UNIT_FREQUENCIES[count_match.group(2).lower()]
        else:
            times_match = COUNT_TIMES_RE.search(text)
            if times_match:
                count = int(times_match.group(1))
        if count is not None and count < 1:
            count = None

        end_date = None
        until_match = UNTIL_RE.search(text)
        if until_match:
            end_date = parse_until(until_match.group(1), today)

        if frequency is None:
            return existing

        recurrence = existing.model_copy(deep=True) if existing else RecurrenceDescriptor(frequency=frequency)
        if interval and recurrence.interval == 1:
            recurrence.interval = interval
        if count and recurrence.occurrence_count is None:
            recurrence.occurrence_count = count
        if end_date and recurrence.end_date is None:
            recurrence.end_date = end_date
        recurrence.add_days(days)

        if recurrence != existing:
            logger.debug(f"Inferred recurrence {recurrence.model_dump(mode='json')}")
        return recurrence
