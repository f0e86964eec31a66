import logging
import re
from typing import List, NamedTuple, Optional

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r'[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+')

# Longer connectives first so " and invite " is not cut short by " invite "
CONNECTIVES = [" and invite ", " invite ", " with ", " to "]

STOP_PHRASES = re.compile(
    r'\s+(?:about|at|on|from|for|in|to|regarding|re:|(?:the\s+)?day\s+after\s+tomorrow|tomorrow|today|tonight|'
    r'this\s+(?:evening|afternoon|morning)|every|called)(?=\s|$)',
    re.IGNORECASE,
)
NOT_A_NAME = {"me", "us", "you", "them", "him", "her", "everyone", "everybody", "all"}

LOCATION_RE = re.compile(
    r'(?:^|\s)(?:at|in|@)\s+(?!\d)(?!(?i:'
    r'noon|midnight|january|february|march|april|may|june|july|august|september|october|november|december|'
    r'monday|tuesday|wednesday|thursday|friday|saturday|sunday)\b)'
    r'([A-Z][^,\.]*?)'
    r'(?=\s+(?:on|at|from|tomorrow|today|tonight|next|every|with|and|for|to|called)\b|[,\.]|$)'
)


class Entities(NamedTuple):
    names: List[str]
    emails: List[str]


def is_email(token: str) -> bool:
    return bool(EMAIL_RE.fullmatch(token.strip().rstrip(".")))


def extract_emails(text: str) -> List[str]:
    """Every email-looking token in the text, in order of appearance"""
    return [match.group(0).rstrip(".") for match in EMAIL_RE.finditer(text)]


def merge_emails(existing: List[str], new: List[str]) -> List[str]:
    """Append new emails, skipping case-insensitive duplicates"""
    merged = list(existing)
    seen = {email.lower() for email in merged}
    for email in new:
        if email.lower() not in seen:
            seen.add(email.lower())
            merged.append(email)
    return merged


def merge_names(existing: List[str], new: List[str]) -> List[str]:
    merged = list(existing)
    for name in new:
        if name not in merged:
            merged.append(name)
    return merged


def _split_tokens(segment: str) -> List[str]:
    tokens = []
    for part in segment.split(","):
        for token in re.split(r'\s+and\s+', part.strip()):
            token = token.strip(" \t\n\"'.;:!?()")
            if token:
                tokens.append(token)
    return tokens


class EntityExtractor:
    """Pull invitee names and email addresses out of a request.

    Tokens after a connective (" with ", " invite ", ...) are classified one
    by one: email-shaped tokens go to the email list, everything else that
    looks like a name goes to the name list. A full-text email scan then
    catches addresses outside any invitee phrase.
    """

    def _segments(self, text: str):
        lowered = text.lower()
        claimed = []
        for connective in CONNECTIVES:
            start = 0
            while True:
                idx = lowered.find(connective, start)
                if idx == -1:
                    break
                start = idx + 1
                # A stop word that ended an earlier segment does not open a new one
                if any(begin <= idx <= end for begin, end in claimed):
                    continue
                begin = idx + len(connective)
                segment = text[begin:]
                # Padded so a segment that opens with a stop word is empty
                stop = STOP_PHRASES.search(" " + segment)
                if stop:
                    segment = segment[:max(stop.start() - 1, 0)]
                if not segment.strip():
                    continue
                claimed.append((idx, begin + len(segment)))
                yield connective, segment

    def extract(self, text: str) -> Entities:
        names: List[str] = []
        emails: List[str] = []
        if not text:
            return Entities(names, emails)

        for connective, segment in self._segments(text):
            logger.debug(f"Invitee segment after '{connective.strip()}': '{segment}'")
            for token in _split_tokens(segment):
                if EMAIL_RE.search(token):
                    emails = merge_emails(emails, extract_emails(token))
                    continue
                if token[0].isdigit() or token.lower() in NOT_A_NAME:
                    continue
                if connective == " to " and not token[0].isupper():
                    # "to" mostly introduces purposes ("to discuss"), not people
                    continue
                names = merge_names(names, [token])

        emails = merge_emails(emails, extract_emails(text))
        if names or emails:
            logger.debug(f"Extracted invitees {names} and emails {emails}")
        return Entities(names, emails)


def extract_location(text: str) -> Optional[str]:
    """A capitalised place after "at", "in" or "@" that is not a clock time"""
    if not text:
        return None
    for match in LOCATION_RE.finditer(text):
        location = match.group(1).strip()
        if location and not EMAIL_RE.search(location):
            logger.debug(f"Extracted location '{location}'")
            return location
    return None
