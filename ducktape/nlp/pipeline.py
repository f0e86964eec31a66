"""Command enhancement pipeline.

A draft (an LLM produced ``ducktape ...`` string, or nothing but the raw
request) is run through a fixed, ordered list of stages:

    verbs -> time -> entities -> recurrence -> modality -> validate

Every stage reads ``draft.source_text`` (the user's words, never the
rendered command) and only fills what is still missing, so running the
pipeline on its own output changes nothing.
"""
import logging
from datetime import date, datetime
from typing import Callable, Dict, List, NamedTuple, Optional, Union
from zoneinfo import ZoneInfo

from ..models.command import CommandFamily, DraftCommand
from .command_string import DEFAULT_TITLE, is_command_string, parse_command, render_command
from .entities import EntityExtractor, extract_location, is_email, merge_emails, merge_names
from .errors import UnresolvedTime
from .modality import is_virtual_meeting
from .recurrence import RecurrenceInferencer
from .time_resolver import TimeExpressionResolver, clean_title, resolve_date_anchor
from .title import extract_title
from .validator import validate_command, validate_draft
from .verbs import classify

logger = logging.getLogger(__name__)

CALENDAR_ONLY = (CommandFamily.CALENDAR_CREATE,)
TIMED_FAMILIES = (CommandFamily.CALENDAR_CREATE, CommandFamily.REMINDER_CREATE)
RECOGNIZED = (CommandFamily.CALENDAR_CREATE, CommandFamily.REMINDER_CREATE, CommandFamily.NOTE_CREATE)

DEFAULT_TARGETS = {
    CommandFamily.CALENDAR_CREATE: "Calendar",
    CommandFamily.REMINDER_CREATE: "Reminders",
    CommandFamily.NOTE_CREATE: "Notes",
}


class Stage:
    """One enhancement step. Subclasses override ``apply``."""

    name = "stage"
    families = RECOGNIZED

    def applies_to(self, draft: DraftCommand) -> bool:
        return draft.family in self.families

    def apply(self, draft: DraftCommand) -> DraftCommand:
        raise NotImplementedError


class VerbStage(Stage):
    """Classify a fresh skeleton and give it a title and target"""

    name = "verbs"
    families = RECOGNIZED + (CommandFamily.UNRECOGNIZED,)

    def __init__(self, default_targets: Dict[CommandFamily, str] = None):
        self.default_targets = dict(DEFAULT_TARGETS)
        if default_targets:
            self.default_targets.update(default_targets)

    def apply(self, draft: DraftCommand) -> DraftCommand:
        if draft.title is None:
            # Only a skeleton built from the request is classified here;
            # a parsed command keeps the family its prefix names
            if draft.family == CommandFamily.UNRECOGNIZED:
                draft.family = classify(draft.source_text)
            if draft.family != CommandFamily.UNRECOGNIZED:
                draft.title = extract_title(draft.source_text) or DEFAULT_TITLE
                logger.debug(f"Built {draft.family.value} skeleton titled '{draft.title}'")
        if draft.family != CommandFamily.UNRECOGNIZED and not draft.target:
            draft.target = self.default_targets.get(draft.family)
        return draft


class TimeStage(Stage):
    name = "time"
    families = TIMED_FAMILIES

    def __init__(self, clock: Callable[[], datetime], resolver: TimeExpressionResolver = None):
        self.clock = clock
        self.resolver = resolver or TimeExpressionResolver()

    def apply(self, draft: DraftCommand) -> DraftCommand:
        resolution = self.resolver.resolve(draft.source_text, self.clock())
        if resolution:
            # Times read from the request win over whatever the draft guessed
            draft.start_time = resolution.start
            draft.end_time = resolution.end
            if resolution.explicit_date or draft.date is None:
                draft.date = resolution.date
            draft.title = clean_title(draft.title, resolution.phrases) or DEFAULT_TITLE
            return draft

        if draft.date is None:
            anchor = resolve_date_anchor(draft.source_text, self.clock().date())
            if anchor:
                draft.date = anchor.date

        if draft.start_time is not None:
            if draft.end_time is None:
                draft.end_time = draft.start_time.plus_hour()
            return draft

        hint = str(UnresolvedTime())
        logger.info(f"No time expression in '{draft.source_text}'")
        if hint not in draft.hints:
            draft.hints.append(hint)
        return draft


class EntityStage(Stage):
    name = "entities"
    families = CALENDAR_ONLY

    def __init__(self, extractor: EntityExtractor = None):
        self.extractor = extractor or EntityExtractor()

    def apply(self, draft: DraftCommand) -> DraftCommand:
        entities = self.extractor.extract(draft.source_text)

        # Email shaped invitees from the draft belong in the email list
        moved = [name for name in draft.invitees if is_email(name)]
        names = [name for name in draft.invitees if not is_email(name)]
        draft.emails = merge_emails(draft.emails, moved + entities.emails)
        draft.invitees = merge_names(names, entities.names)

        if draft.location is None:
            draft.location = extract_location(draft.source_text)
        return draft


class RecurrenceStage(Stage):
    name = "recurrence"
    families = CALENDAR_ONLY

    def __init__(self, clock: Callable[[], datetime], inferencer: RecurrenceInferencer = None):
        self.clock = clock
        self.inferencer = inferencer or RecurrenceInferencer()

    def apply(self, draft: DraftCommand) -> DraftCommand:
        draft.recurrence = self.inferencer.infer(
            draft.source_text, self.clock().date(), draft.recurrence
        )
        return draft


class ModalityStage(Stage):
    name = "modality"
    families = CALENDAR_ONLY

    def apply(self, draft: DraftCommand) -> DraftCommand:
        if not draft.is_virtual_meeting and is_virtual_meeting(draft.source_text):
            draft.is_virtual_meeting = True
        return draft


class ValidateStage(Stage):
    name = "validate"

    def apply(self, draft: DraftCommand) -> DraftCommand:
        return validate_draft(draft)


class EnhancementResult(NamedTuple):
    command: DraftCommand
    rendered: Optional[str]
    hints: List[str]

    @property
    def recognized(self) -> bool:
        return self.command.family != CommandFamily.UNRECOGNIZED


class CommandEnhancementPipeline:
    """Turn a draft command and the original request into a final command"""

    def __init__(
        self,
        default_targets: Dict[CommandFamily, str] = None,
        timezone: str = None,
        clock: Callable[[], datetime] = None,
        stages: List[Stage] = None,
    ):
        self.timezone = ZoneInfo(timezone) if timezone else None
        self.clock = clock or self._now
        self.stages = stages if stages is not None else [
            VerbStage(default_targets),
            TimeStage(self.clock),
            EntityStage(),
            RecurrenceStage(self.clock),
            ModalityStage(),
            ValidateStage(),
        ]

    def _now(self) -> datetime:
        return datetime.now(self.timezone)

    def _prepare(self, draft_command, utterance, today: date):
        """Build the working draft and the free text the stages read"""
        passthrough = None
        if isinstance(draft_command, DraftCommand):
            draft = draft_command.model_copy(deep=True)
            source = draft.source_text
        elif draft_command and is_command_string(draft_command):
            validate_command(draft_command)
            passthrough = draft_command
            draft, source = parse_command(draft_command, today)
        else:
            text = draft_command or ""
            if text:
                validate_command(text)
            draft, source = DraftCommand(), text

        if utterance is not None:
            validate_command(utterance)
            if is_command_string(utterance):
                # A normalized command as the request: only its leftovers are free text
                _, source = parse_command(utterance, today)
            else:
                source = utterance
        draft.source_text = source
        return draft, passthrough

    def enhance(
        self,
        draft_command: Union[str, DraftCommand, None],
        utterance: Optional[str] = None,
    ) -> EnhancementResult:
        """Run every applicable stage in order.

        Raises UnsafeCommand / OutOfRangeValue when validation fails.
        Unrecognized input comes back with ``rendered`` set to the original
        command string, or None when there was none.
        """
        today = self.clock().date()
        draft, passthrough = self._prepare(draft_command, utterance, today)

        for stage in self.stages:
            if not stage.applies_to(draft):
                continue
            draft = stage.apply(draft)
            if draft.family == CommandFamily.UNRECOGNIZED:
                logger.info("Unrecognized request, passing through without enhancement")
                return EnhancementResult(draft, passthrough, list(draft.hints))

        rendered = validate_command(render_command(draft, today))
        logger.debug(f"Enhanced command: {rendered}")
        return EnhancementResult(draft, rendered, list(draft.hints))
