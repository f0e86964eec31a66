"""Last line of defence before a command reaches the execution layer.

The execution layer builds shell and AppleScript invocations from the
rendered string, so any command-chaining metacharacter rejects the whole
command regardless of where it appears.
"""
import logging
import re

from ..models.command import DraftCommand
from .errors import OutOfRangeValue, UnsafeCommand

logger = logging.getLogger(__name__)

UNSAFE_SEQUENCES = ["&&", "|", ";", "`"]
MAX_INTERVAL = 100
MAX_COUNT = 500

INTERVAL_FLAG_RE = re.compile(r'--interval\s+"?(\d+)"?')
COUNT_FLAG_RE = re.compile(r'--count\s+"?(\d+)"?')


def check_safe(text: str) -> None:
    for sequence in UNSAFE_SEQUENCES:
        if sequence in text:
            logger.error(f"Rejecting command containing '{sequence}'")
            raise UnsafeCommand(
                f"Command contains unsafe character sequence '{sequence}'",
                hint="Remove shell characters such as ; | && and backticks",
            )


def check_range(name: str, value: int, maximum: int) -> None:
    if value > maximum:
        logger.error(f"Rejecting command with {name} {value} > {maximum}")
        raise OutOfRangeValue(
            f"{name.capitalize()} {value} exceeds the maximum of {maximum}",
            hint=f"Use a {name} of at most {maximum}",
        )


def validate_command(command: str) -> str:
    """Validate a rendered command string, returning it unchanged"""
    check_safe(command)
    for match in INTERVAL_FLAG_RE.finditer(command):
        check_range("interval", int(match.group(1)), MAX_INTERVAL)
    for match in COUNT_FLAG_RE.finditer(command):
        check_range("count", int(match.group(1)), MAX_COUNT)
    return command


def validate_draft(draft: DraftCommand) -> DraftCommand:
    """The same checks applied to the structured fields"""
    texts = [draft.title, draft.target, draft.location] + draft.invitees + draft.emails
    for text in texts:
        if text:
            check_safe(text)
    if draft.recurrence:
        check_range("interval", draft.recurrence.interval, MAX_INTERVAL)
        if draft.recurrence.occurrence_count is not None:
            check_range("count", draft.recurrence.occurrence_count, MAX_COUNT)
    return draft
