import logging

from .errors import EmptyInput, InputTooLong

logger = logging.getLogger(__name__)

MAX_INPUT_LENGTH = 1000


def sanitize_user_input(text: str) -> str:
    """Strip control characters except newline and tab"""
    return "".join(
        ch for ch in text
        if ch in ("\n", "\t") or not _is_control(ch)
    )


def _is_control(ch: str) -> bool:
    code = ord(ch)
    return code < 0x20 or 0x7F <= code <= 0x9F


def prepare_input(text: str, max_length: int = MAX_INPUT_LENGTH) -> str:
    """Validate and sanitize raw user input before it reaches the LLM or the pipeline"""
    if text is None or not text.strip():
        raise EmptyInput("Empty input provided")

    if len(text) > max_length:
        raise InputTooLong(f"Input too long ({len(text)} characters, max {max_length})")

    sanitized = sanitize_user_input(text).strip()
    if not sanitized:
        raise EmptyInput("Input contained only control characters")

    if sanitized != text.strip():
        logger.debug("Removed control characters from input")
    return sanitized
