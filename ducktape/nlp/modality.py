import logging
import re

logger = logging.getLogger(__name__)

VIRTUAL_MEETING_KEYWORDS = [
    "zoom",
    "video call",
    "video meeting",
    "virtual meeting",
    "online meeting",
    "teams meeting",
    "google meet",
]

VIRTUAL_MEETING_RE = re.compile(
    r'\b(?:' + '|'.join(re.escape(k).replace(r'\ ', r'\s+') for k in VIRTUAL_MEETING_KEYWORDS) + r')\b',
    re.IGNORECASE,
)


def is_virtual_meeting(text: str) -> bool:
    """True when the text mentions a video or online meeting"""
    if not text:
        return False
    match = VIRTUAL_MEETING_RE.search(text)
    if match:
        logger.debug(f"Virtual meeting keyword: '{match.group(0)}'")
    return bool(match)
