import logging
import re
from typing import Tuple

from ..models.command import CommandFamily
from .command_string import FAMILY_WORDS, HEAD_RE, is_command_string

logger = logging.getLogger(__name__)

# Leading word -> command family
COMMAND_VERB_MAPPING = {
    # Calendar
    "schedule": CommandFamily.CALENDAR_CREATE,
    "book": CommandFamily.CALENDAR_CREATE,
    "plan": CommandFamily.CALENDAR_CREATE,
    "arrange": CommandFamily.CALENDAR_CREATE,
    "organize": CommandFamily.CALENDAR_CREATE,
    "setup": CommandFamily.CALENDAR_CREATE,
    "meeting": CommandFamily.CALENDAR_CREATE,
    "appointment": CommandFamily.CALENDAR_CREATE,
    "event": CommandFamily.CALENDAR_CREATE,
    # Reminders
    "remind": CommandFamily.REMINDER_CREATE,
    "reminder": CommandFamily.REMINDER_CREATE,
    "todo": CommandFamily.REMINDER_CREATE,
    # Notes
    "note": CommandFamily.NOTE_CREATE,
    "jot": CommandFamily.NOTE_CREATE,
}

# Verbs that say "make something" without saying what
GENERIC_VERBS = {"create", "add", "new", "make", "set", "put"}

FAMILY_KEYWORDS = [
    (CommandFamily.REMINDER_CREATE, ["remind me", "reminder", "todo", "to-do", "to do list"]),
    (CommandFamily.NOTE_CREATE, ["take a note", "make a note", "a note", "note that", "jot down", "write down"]),
    (CommandFamily.CALENDAR_CREATE, ["meeting", "event", "appointment", "zoom", "call with", "lunch with", "dinner with"]),
]

CANONICAL_PREFIXES = [
    ("calendar create", CommandFamily.CALENDAR_CREATE),
    ("reminder create", CommandFamily.REMINDER_CREATE),
    ("note create", CommandFamily.NOTE_CREATE),
    ("todo", CommandFamily.REMINDER_CREATE),
]


def _scan_keywords(text_lower: str) -> CommandFamily:
    for family, keywords in FAMILY_KEYWORDS:
        for keyword in keywords:
            if re.search(r'\b' + re.escape(keyword) + r'\b', text_lower):
                logger.debug(f"Keyword '{keyword}' implies {family.value}")
                return family
    return CommandFamily.UNRECOGNIZED


def classify(text: str) -> CommandFamily:
    """Decide which command family a request belongs to"""
    stripped = text.strip()
    lowered = stripped.lower()
    if not lowered:
        return CommandFamily.UNRECOGNIZED

    # Already normalized: never reclassify
    if is_command_string(stripped):
        head = HEAD_RE.match(stripped)
        return FAMILY_WORDS.get(head.group(1).lower(), CommandFamily.UNRECOGNIZED) if head else CommandFamily.UNRECOGNIZED
    for prefix, family in CANONICAL_PREFIXES:
        if lowered.startswith(prefix):
            return family

    first_word = re.split(r'\W+', lowered, maxsplit=1)[0]
    if first_word in COMMAND_VERB_MAPPING:
        family = COMMAND_VERB_MAPPING[first_word]
        logger.debug(f"Mapped verb '{first_word}' to {family.value}")
        return family

    family = _scan_keywords(lowered)
    if family == CommandFamily.UNRECOGNIZED and first_word in GENERIC_VERBS:
        # "create/add ..." without a telling noun defaults to a calendar event
        family = CommandFamily.CALENDAR_CREATE
    return family


def normalize(text: str) -> Tuple[CommandFamily, str]:
    """Classify the text; the text itself is returned unchanged"""
    return classify(text), text
