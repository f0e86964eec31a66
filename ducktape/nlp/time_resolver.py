"""Resolve time-of-day and date expressions in free text.

Pattern families are tried in priority order and the first family that
matches wins:

1. a relative-day anchor combined with a clock ("tonight at 7pm",
   "tomorrow at 9:30 a.m.", "at 8am tomorrow")
2. a relative duration ("in 45 minutes", "in 2hours")
3. a bare clock ("at 3pm", "23:45", "at noon"), dated today unless another
   date phrase ("tomorrow", "on Friday", "2026-11-02") says otherwise

Once a family matches, weaker families are not applied, so digits in a
title are never read as a second time.
"""
import logging
import re
from datetime import date, datetime, timedelta
from typing import List, NamedTuple, Optional

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta, MO, TU, WE, TH, FR, SA, SU

from ..models.command import ClockTime

logger = logging.getLogger(__name__)

AM = "am"
PM = "pm"

MERIDIEM = r'(?P<meridiem>[ap])\.?\s?m\.?(?![a-z])'
CLOCK = r'(?P<hour>\d{1,2})(?::(?P<minute>\d{2}))?(?!:?\d)(?:\s*' + MERIDIEM + r')?'
CLOCK_WITH_MERIDIEM = r'(?P<hour>\d{1,2})(?::(?P<minute>\d{2}))?(?!:?\d)\s*' + MERIDIEM
CLOCK_WORD = r'(?P<word>noon|midnight)'
AFTER_TOMORROW = r'(?:the\s+)?day\s+after\s+tomorrow'
ANCHOR = r'(?P<anchor>' + AFTER_TOMORROW + r'|tonight|today|tomorrow|this\s+(?:evening|afternoon|morning))'

# Anchors that read a bare hour as PM ("tonight at 8")
EVENING_ANCHORS = ("tonight", "this evening", "this afternoon")

ANCHORED_PATTERNS = [
    re.compile(r'\b' + ANCHOR + r'\s+at\s+(?:' + CLOCK_WORD + r'|' + CLOCK + r')', re.IGNORECASE),
    re.compile(r'\bat\s+(?:' + CLOCK_WORD + r'|' + CLOCK + r')\s+' + ANCHOR + r'\b', re.IGNORECASE),
]

RELATIVE_PATTERN = re.compile(
    r'\bin\s+(?P<amount>\d{1,3})\s*(?P<unit>minutes?|mins?|hours?|hrs?)\b',
    re.IGNORECASE,
)

BARE_PATTERNS = [
    re.compile(r'\bat\s+(?:' + CLOCK_WORD + r'|' + CLOCK + r')', re.IGNORECASE),
    re.compile(r'(?<![\w:.-])' + CLOCK_WITH_MERIDIEM, re.IGNORECASE),
    re.compile(r'(?<![\w:.-])(?P<hour>\d{1,2}):(?P<minute>\d{2})(?![\d:])', re.IGNORECASE),
    # "noon" and "midnight" need "at" or "by" in front, otherwise they stay in the title
    re.compile(r'\bby\s+' + CLOCK_WORD + r'\b', re.IGNORECASE),
]

WEEKDAYS = {
    "monday": MO, "tuesday": TU, "wednesday": WE, "thursday": TH,
    "friday": FR, "saturday": SA, "sunday": SU,
}
MONTHS = r'(?:jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec)[a-z]*\.?'

DATE_ANCHOR_PATTERNS = [
    ("after_tomorrow", re.compile(r'\b' + AFTER_TOMORROW + r'\b', re.IGNORECASE)),
    ("tomorrow", re.compile(r'\btomorrow\b', re.IGNORECASE)),
    ("today", re.compile(r'\b(?:today|tonight|this\s+(?:evening|afternoon|morning))\b', re.IGNORECASE)),
    ("iso", re.compile(r'\b(?:on\s+)?(?P<iso>\d{4}-\d{2}-\d{2})\b')),
    ("month_day", re.compile(
        r'\bon\s+(?P<text>' + MONTHS + r'\s+\d{1,2}(?:st|nd|rd|th)?(?:,?\s+\d{4})?)\b', re.IGNORECASE)),
    ("weekday", re.compile(
        r'\b(?:(?:on|next|this)\s+)?(?P<weekday>' + '|'.join(WEEKDAYS) + r')\b', re.IGNORECASE)),
]


class DateAnchor(NamedTuple):
    date: date
    phrase: str


class TimeResolution(NamedTuple):
    date: date
    start: ClockTime
    end: ClockTime
    phrases: List[str]
    family: str
    explicit_date: bool = True


def convert_to_24_hour(hour: int, meridiem: Optional[str]) -> int:
    """Convert a 12-hour clock hour to 24-hour form"""
    if meridiem == AM and hour == 12:
        return 0
    if meridiem == PM and hour == 12:
        return 12
    if meridiem == PM and hour < 12:
        return hour + 12
    return hour


def _meridiem(raw: Optional[str]) -> Optional[str]:
    if not raw:
        return None
    return AM if raw.lower() == "a" else PM


def clock_from_match(match: re.Match, default_pm: bool = False) -> Optional[ClockTime]:
    """Build a 24-hour ClockTime from a clock regex match, or None if out of range"""
    groups = match.groupdict()
    word = groups.get("word")
    if word:
        return ClockTime(hour=12 if word.lower() == "noon" else 0, minute=0)

    hour = int(groups["hour"])
    minute = int(groups["minute"]) if groups.get("minute") else 0
    meridiem = _meridiem(groups.get("meridiem"))
    if meridiem is None and default_pm and 1 <= hour <= 11:
        meridiem = PM
    hour = convert_to_24_hour(hour, meridiem)

    if hour >= 24 or minute >= 60:
        logger.debug(f"Rejecting out of range time: {match.group(0)}")
        return None
    return ClockTime(hour=hour, minute=minute)


def resolve_date_anchor(text: str, today: date) -> Optional[DateAnchor]:
    """Find a date phrase in text and resolve it to an absolute date"""
    for kind, pattern in DATE_ANCHOR_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        phrase = match.group(0)
        if kind == "after_tomorrow":
            return DateAnchor(today + timedelta(days=2), phrase)
        if kind == "tomorrow":
            return DateAnchor(today + timedelta(days=1), phrase)
        if kind == "today":
            return DateAnchor(today, phrase)
        if kind == "iso":
            try:
                return DateAnchor(date.fromisoformat(match.group("iso")), phrase)
            except ValueError:
                logger.warning(f"Ignoring invalid date: {match.group('iso')}")
                continue
        if kind == "month_day":
            default = datetime(today.year, today.month, today.day)
            try:
                parsed = date_parser.parse(match.group("text"), default=default).date()
            except (ValueError, OverflowError):
                logger.warning(f"Could not parse date: {match.group('text')}")
                continue
            if parsed < today and not re.search(r'\d{4}', match.group("text")):
                parsed = parsed + relativedelta(years=1)
            return DateAnchor(parsed, phrase)
        if kind == "weekday":
            weekday = WEEKDAYS[match.group("weekday").lower()]
            # Always the next occurrence strictly after today
            return DateAnchor(today + relativedelta(days=1, weekday=weekday(+1)), phrase)
    return None


def _anchor_date(anchor: str, today: date) -> date:
    if re.fullmatch(AFTER_TOMORROW, anchor, re.IGNORECASE):
        return today + timedelta(days=2)
    if anchor.lower() == "tomorrow":
        return today + timedelta(days=1)
    return today


def _is_evening(anchor: str) -> bool:
    return re.sub(r'\s+', ' ', anchor.lower()) in EVENING_ANCHORS


class TimeExpressionResolver:
    """Extract one time expression from text and resolve it against a clock"""

    def resolve(self, text: str, now: datetime) -> Optional[TimeResolution]:
        if not text:
            return None
        today = now.date()
        return (
            self._resolve_anchored(text, today)
            or self._resolve_relative(text, now)
            or self._resolve_bare(text, today)
        )

    def _earliest(self, patterns, text):
        matches = [m for m in (p.search(text) for p in patterns) if m]
        return sorted(matches, key=lambda m: m.start())

    def _resolve_anchored(self, text: str, today: date) -> Optional[TimeResolution]:
        for match in self._earliest(ANCHORED_PATTERNS, text):
            anchor = match.group("anchor")
            start = clock_from_match(match, default_pm=_is_evening(anchor))
            if start is None:
                continue
            logger.debug(f"Anchored time '{match.group(0)}' -> {start}")
            return TimeResolution(
                date=_anchor_date(anchor, today),
                start=start,
                end=start.plus_hour(),
                phrases=[match.group(0)],
                family="anchored",
            )
        return None

    def _resolve_relative(self, text: str, now: datetime) -> Optional[TimeResolution]:
        match = RELATIVE_PATTERN.search(text)
        if not match:
            return None
        amount = int(match.group("amount"))
        unit = match.group("unit").lower()
        delta = timedelta(hours=amount) if unit.startswith("h") else timedelta(minutes=amount)
        start_at = now + delta
        start = ClockTime(hour=start_at.hour, minute=start_at.minute)
        logger.debug(f"Relative time '{match.group(0)}' -> {start_at.isoformat()}")
        # The date follows the start instant, so late-night offsets roll over
        return TimeResolution(
            date=start_at.date(),
            start=start,
            end=start.plus_hour(),
            phrases=[match.group(0)],
            family="relative",
        )

    def _resolve_bare(self, text: str, today: date) -> Optional[TimeResolution]:
        # Priority order, not position: "Midnight Party at 12am" resolves "at 12am"
        for match in (m for m in (p.search(text) for p in BARE_PATTERNS) if m):
            start = clock_from_match(match)
            if start is None:
                continue
            phrases = [match.group(0)]
            resolved_date = today
            anchor = resolve_date_anchor(text, today)
            if anchor:
                resolved_date = anchor.date
                phrases.append(anchor.phrase)
            logger.debug(f"Bare time '{match.group(0)}' -> {resolved_date} {start}")
            return TimeResolution(
                date=resolved_date,
                start=start,
                end=start.plus_hour(),
                phrases=phrases,
                family="bare",
                explicit_date=anchor is not None,
            )
        return None


TITLE_TIME_PATTERNS = ANCHORED_PATTERNS + [RELATIVE_PATTERN] + BARE_PATTERNS[:2] + [
    re.compile(r'\b' + ANCHOR + r'\b', re.IGNORECASE),
]
DANGLING_CONNECTOR_RE = re.compile(r'(?:^|\s+)(?:at|on|in|@)\s*$', re.IGNORECASE)


def clean_title(title: Optional[str], phrases: List[str]) -> Optional[str]:
    """Remove matched time phrases (and leftover time wording) from a title"""
    if not title:
        return title
    cleaned = title
    for phrase in phrases:
        cleaned = re.sub(re.escape(phrase), " ", cleaned, flags=re.IGNORECASE)
    for pattern in TITLE_TIME_PATTERNS:
        cleaned = pattern.sub(" ", cleaned)
    cleaned = re.sub(r'\s+', ' ', cleaned).strip()
    while DANGLING_CONNECTOR_RE.search(cleaned):
        cleaned = DANGLING_CONNECTOR_RE.sub("", cleaned).strip()
    if cleaned != title:
        logger.debug(f"Cleaned title '{title}' -> '{cleaned}'")
    return cleaned or None
