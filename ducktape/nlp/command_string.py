"""Render and parse the ``ducktape`` command grammar.

    ducktape <family> create "<title>" <YYYY-MM-DD> <HH:MM> <HH:MM> "<target>"
        [--email "<e1>,<e2>"] [--contacts "<n1>,<n2>"] [--location "<loc>"]
        [--repeat daily|weekly|monthly|yearly] [--interval N] [--until YYYY-MM-DD]
        [--count N] [--days D,D,...] [--zoom]

Positional fields keep a fixed order; flags may appear in any order.
"""
import logging
import re
from datetime import date, timedelta
from typing import List, Optional, Tuple

from ..models.command import (
    ClockTime,
    CommandFamily,
    DraftCommand,
    Frequency,
    RecurrenceDescriptor,
)

logger = logging.getLogger(__name__)

COMMAND_PREFIX = "ducktape"

PLACEHOLDER_START = ClockTime(hour=0, minute=0)
DEFAULT_TITLE = "Event"

FAMILY_WORDS = {
    "calendar": CommandFamily.CALENDAR_CREATE,
    "event": CommandFamily.CALENDAR_CREATE,
    "reminder": CommandFamily.REMINDER_CREATE,
    "reminders": CommandFamily.REMINDER_CREATE,
    "todo": CommandFamily.REMINDER_CREATE,
    "note": CommandFamily.NOTE_CREATE,
    "notes": CommandFamily.NOTE_CREATE,
}

HEAD_RE = re.compile(r'^\s*ducktape\s+(\w+)(?:\s+(create|add)\b)?', re.IGNORECASE)
# A rendered title ending in an escaped quote ends in \"" and is not doubled
DOUBLED_QUOTE_RE = re.compile(r'(?<!\\)""(?=\S)|(?<=[^\s\\])""')
TOKEN_RE = re.compile(r'"((?:[^"\\]|\\.)*)"|(\S+)')
ISO_DATE_RE = re.compile(r'^\d{4}-\d{2}-\d{2}$')
CLOCK_RE = re.compile(r'^(\d{1,2}):(\d{2})$')

VALUE_FLAGS = {"--email", "--contacts", "--location", "--repeat", "--interval",
               "--until", "--count", "--days"}


def is_command_string(text: str) -> bool:
    return bool(text) and text.lstrip().lower().startswith(COMMAND_PREFIX + " ")


def normalize_draft_text(command: str) -> str:
    """Fix common artefacts in LLM generated commands"""
    return (
        DOUBLED_QUOTE_RE.sub('"', command.replace("\u00a0", " "))
        .strip()
    )


def quote(value: str) -> str:
    return '"' + value.replace('"', '\\"') + '"'


def render_command(draft: DraftCommand, default_date: date) -> str:
    """Render a draft as a ducktape command string"""
    if draft.family == CommandFamily.UNRECOGNIZED:
        raise ValueError("Cannot render an unrecognized command")

    start = draft.start_time or PLACEHOLDER_START
    end = draft.end_time or start.plus_hour()
    parts = [
        COMMAND_PREFIX,
        draft.family.value,
        "create",
        quote(draft.title or DEFAULT_TITLE),
        (draft.date or default_date).isoformat(),
        str(start),
        str(end),
        quote(draft.target or ""),
    ]

    if draft.emails:
        parts += ["--email", quote(",".join(draft.emails))]
    if draft.invitees:
        parts += ["--contacts", quote(",".join(draft.invitees))]
    if draft.location:
        parts += ["--location", quote(draft.location)]

    recurrence = draft.recurrence
    if recurrence:
        parts += ["--repeat", recurrence.frequency.value]
        if recurrence.interval != 1:
            parts += ["--interval", str(recurrence.interval)]
        if recurrence.end_date:
            parts += ["--until", recurrence.end_date.isoformat()]
        if recurrence.occurrence_count:
            parts += ["--count", str(recurrence.occurrence_count)]
        if recurrence.days_of_week:
            parts += ["--days", ",".join(str(d) for d in recurrence.days_of_week)]

    if draft.is_virtual_meeting:
        parts.append("--zoom")

    return " ".join(parts)


def _tokenize(text: str) -> List[Tuple[str, bool]]:
    tokens = []
    for match in TOKEN_RE.finditer(text):
        if match.group(1) is not None:
            tokens.append((match.group(1).replace('\\"', '"'), True))
        else:
            tokens.append((match.group(2), False))
    return tokens


def _parse_date(value: str, today: date) -> Optional[date]:
    lowered = value.lower()
    if lowered in ("today", "tonight"):
        return today
    if lowered == "tomorrow":
        return today + timedelta(days=1)
    if ISO_DATE_RE.match(value):
        try:
            return date.fromisoformat(value)
        except ValueError:
            logger.warning(f"Ignoring invalid date in command: {value}")
    return None


def _parse_clock(value: str) -> Optional[ClockTime]:
    match = CLOCK_RE.match(value)
    if not match:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour >= 24 or minute >= 60:
        return None
    return ClockTime(hour=hour, minute=minute)


def _is_date_token(value: str) -> bool:
    return bool(ISO_DATE_RE.match(value)) or value.lower() in ("today", "tonight", "tomorrow")


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _positive_int(flag: str, value: str) -> Optional[int]:
    try:
        number = int(value)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring non-numeric {flag} value: {value}")
        return None
    if number < 1:
        logger.warning(f"Ignoring {flag} value below 1: {number}")
        return None
    return number


def parse_command(command: str, today: date) -> Tuple[DraftCommand, str]:
    """Parse a ducktape command string into a draft.

    Returns the draft and any free text the grammar does not account for,
    which later stages still scan for recurrence, invitees and so on.
    """
    command = normalize_draft_text(command)
    head = HEAD_RE.match(command)
    if not head:
        raise ValueError(f"Not a ducktape command: {command}")

    family = FAMILY_WORDS.get(head.group(1).lower(), CommandFamily.UNRECOGNIZED)
    if head.group(2) is None and head.group(1).lower() not in ("todo", "note", "notes"):
        # "ducktape calendar list" and friends are not create commands
        family = CommandFamily.UNRECOGNIZED
    tokens = _tokenize(command[head.end():])
    draft = DraftCommand(family=family)
    remainder = []

    i = 0
    # Positional fields
    if i < len(tokens) and not tokens[i][0].startswith("--"):
        draft.title = tokens[i][0].strip() or DEFAULT_TITLE
        i += 1
    if i < len(tokens) and not tokens[i][1] and _is_date_token(tokens[i][0]):
        draft.date = _parse_date(tokens[i][0], today)
        i += 1
    if i < len(tokens) and not tokens[i][1] and _parse_clock(tokens[i][0]):
        draft.start_time = _parse_clock(tokens[i][0])
        i += 1
        # An end time written as "YYYY-MM-DD HH:MM" keeps only the clock
        if (i + 1 < len(tokens) and not tokens[i][1] and ISO_DATE_RE.match(tokens[i][0])
                and _parse_clock(tokens[i + 1][0])):
            logger.debug(f"Dropping date from end time: {tokens[i][0]}")
            i += 1
        if i < len(tokens) and not tokens[i][1] and _parse_clock(tokens[i][0]):
            draft.end_time = _parse_clock(tokens[i][0])
            i += 1
    if i < len(tokens) and tokens[i][1]:
        draft.target = tokens[i][0] or None
        i += 1

    # Flags
    frequency = None
    pending = {}
    while i < len(tokens):
        value, quoted = tokens[i]
        flag = value.lower() if not quoted else None
        if flag in VALUE_FLAGS and i + 1 < len(tokens):
            pending[flag] = tokens[i + 1][0]
            i += 2
            continue
        if flag == "--zoom":
            draft.is_virtual_meeting = True
        else:
            remainder.append(value)
        i += 1

    for email in _split_list(pending.get("--email", "")):
        # LLM drafts sometimes put plain names in the email flag
        if "@" in email:
            draft.emails.append(email)
        else:
            logger.debug(f"Moving name from --email to contacts: {email}")
            draft.invitees.append(email)
    for name in _split_list(pending.get("--contacts", "")):
        if "@" in name:
            draft.emails.append(name)
        elif name not in draft.invitees:
            draft.invitees.append(name)
    if pending.get("--location"):
        draft.location = pending["--location"].strip() or None

    if "--repeat" in pending:
        try:
            frequency = Frequency(pending["--repeat"].lower())
        except ValueError:
            logger.warning(f"Ignoring unknown --repeat value: {pending['--repeat']}")
    days = []
    if "--days" in pending:
        days = [int(d) for d in _split_list(pending["--days"]) if d.isdigit()]
        if frequency is None and days:
            frequency = Frequency.WEEKLY
    if frequency is not None:
        recurrence = RecurrenceDescriptor(frequency=frequency)
        if "--interval" in pending:
            recurrence.interval = _positive_int("--interval", pending["--interval"]) or 1
        if "--count" in pending:
            recurrence.occurrence_count = _positive_int("--count", pending["--count"])
        if "--until" in pending:
            recurrence.end_date = _parse_date(pending["--until"], today)
        recurrence.add_days(days)
        draft.recurrence = recurrence
    elif any(flag in pending for flag in ("--interval", "--count", "--until")):
        logger.warning("Ignoring recurrence options without a --repeat frequency")

    return draft, " ".join(remainder)
