"""Errors raised while turning a request into a ducktape command.

Extraction misses are not errors: a stage that finds nothing leaves its
field empty. Only input problems, safety/range violations and upstream
failures abort a command.
"""

TIME_SUGGESTION = "try 'at 3pm', 'tomorrow at 9am' or 'in 30 minutes'"


class DucktapeError(Exception):
    """Base class for errors that abort a command"""

    hint = None

    def __init__(self, message: str, hint: str = None):
        super().__init__(message)
        if hint is not None:
            self.hint = hint


class EmptyInput(DucktapeError):
    hint = "Describe what you want to schedule, e.g. 'standup tomorrow at 9am'"


class InputTooLong(DucktapeError):
    hint = "Shorten the request and try again"


class UnsafeCommand(DucktapeError):
    pass


class OutOfRangeValue(DucktapeError):
    pass


class UpstreamFailure(DucktapeError):
    """The LLM or execution collaborator failed"""


class UnresolvedTime(Warning):
    """No time expression matched; the command proceeds without one"""

    def __init__(self, message: str = None):
        super().__init__(message or f"No time found in the request, {TIME_SUGGESTION}")
