import logging
import re
from typing import Optional

logger = logging.getLogger(__name__)

QUOTED_TITLE_RE = re.compile(r'\b(?:called|titled|named)\s+["“]([^"”]+)["”]', re.IGNORECASE)
TITLE_MARKER_RE = re.compile(r'\b(?:called|titled|named)\s+(.+)$', re.IGNORECASE)
LEADING_VERB_RE = re.compile(
    r'^(?:please\s+)?'
    r'(?:take\s+a\s+note|make\s+a\s+note|jot\s+down|write\s+down|remind\s+me\s+to|remind\s+me|remind|'
    r'schedule|create|add|book|plan|arrange|organize|set\s*up|make|new|note)\b\s*',
    re.IGNORECASE,
)
LEADING_FILLER_RE = re.compile(r'^(?:(?:a|an|the|new|my|about|that)\s+)+', re.IGNORECASE)

# Words that end a title when it runs into the rest of the request
END_MARKERS = re.compile(
    r'\s+(?:at|on|for|with|and\s+invite|invite|tonight|today|(?:the\s+)?day\s+after\s+tomorrow|tomorrow|this\s+(?:evening|afternoon|morning)|'
    r'every|in|until|from|daily|weekly|monthly|yearly|annually|@)(?=\s|$|\d)',
    re.IGNORECASE,
)


def _cut_at_end_marker(text: str) -> str:
    match = END_MARKERS.search(" " + text)
    if match:
        # Offset by the leading space added above
        text = text[:max(match.start() - 1, 0)]
    return text.strip(" \t\n,.;:!?")


def extract_title(utterance: str) -> Optional[str]:
    """Pull an event title out of a free-form request.

    "called X" / "titled X" / "named X" wins; otherwise the request minus
    its leading verb, articles and everything from the first time, date,
    invitee or recurrence phrase on.
    """
    quoted = QUOTED_TITLE_RE.search(utterance)
    if quoted:
        return quoted.group(1).strip() or None

    marker = TITLE_MARKER_RE.search(utterance)
    if marker:
        title = _cut_at_end_marker(marker.group(1))
        logger.debug(f"Title from marker phrase: '{title}'")
        return title or None

    text = LEADING_VERB_RE.sub("", utterance.strip(), count=1)
    text = LEADING_FILLER_RE.sub("", text, count=1)
    title = _cut_at_end_marker(text)
    if not title:
        return None
    title = title[0].upper() + title[1:]
    logger.debug(f"Title from request text: '{title}'")
    return title
