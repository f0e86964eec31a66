from typing import Optional, Protocol
import asyncio
import logging

from ..config.manager import ConfigManager
from ..models.command import DraftCommand
from .cache import ResponseCache
from .command_string import is_command_string
from .errors import DucktapeError, UpstreamFailure
from .pipeline import CommandEnhancementPipeline, EnhancementResult
from .text import prepare_input

logger = logging.getLogger(__name__)


class DraftSource(Protocol):
    """Anything that can turn sanitized input into a skeleton command"""

    async def draft(self, sanitized_input: str) -> str:
        ...


class NLPProcessor:
    def __init__(
        self,
        config: ConfigManager = None,
        draft_source: Optional[DraftSource] = None,
        cache: ResponseCache = None,
        pipeline: CommandEnhancementPipeline = None,
    ):
        self.config = config or ConfigManager()
        self.max_input_length = self.config.get('app.max_input_length', 1000)
        self.cache = cache or ResponseCache(self.config.get('features.cache_size', 100))
        self.pipeline = pipeline or CommandEnhancementPipeline(
            default_targets=self.config.default_targets(),
            timezone=self.config.get('app.timezone'),
        )
        self.draft_source = draft_source
        if self.draft_source is None and self.config.get('features.enable_llm'):
            if self.config.get_openai_key():
                from .openai_processor import OpenAIDraftSource
                self.draft_source = OpenAIDraftSource(self.config)
            else:
                logger.warning("LLM enabled but no OpenAI API key configured, parsing offline")

    async def _get_draft(self, sanitized: str) -> Optional[str]:
        if self.draft_source is None:
            return None

        draft = self.cache.get(sanitized)
        if draft is None:
            try:
                draft = await self.draft_source.draft(sanitized)
            except DucktapeError:
                raise
            except Exception as e:
                logger.error(f"Draft source failed: {e}")
                raise UpstreamFailure(f"Could not get a draft command: {e}") from e
            self.cache.put(sanitized, draft)

        if not is_command_string(draft):
            logger.warning(f"Draft is not a ducktape command, building from the request instead: {draft!r}")
            return None
        return draft

    async def parse_command(self, text: str) -> EnhancementResult:
        """Parse natural language into an enhanced, validated command"""
        sanitized = prepare_input(text, self.max_input_length)
        draft = await self._get_draft(sanitized)
        return self.pipeline.enhance(draft, utterance=sanitized)

    def parse_command_sync(self, text: str) -> EnhancementResult:
        return asyncio.run(self.parse_command(text))

    @staticmethod
    def summarize(command: DraftCommand) -> str:
        """One line summary of a parsed command"""
        summary = [f"{command.family.value.capitalize()}: {command.title}"]

        if command.date:
            when = command.date.strftime('%B %d, %Y')
            if command.start_time:
                when += f" {command.start_time}-{command.end_time or command.start_time.plus_hour()}"
            summary.append(f"When: {when}")

        if command.location:
            summary.append(f"Where: {command.location}")

        invitees = command.invitees + command.emails
        if invitees:
            summary.append(f"With: {', '.join(invitees)}")

        if command.recurrence:
            summary.append(f"Repeats: {command.recurrence.frequency.value}")

        if command.is_virtual_meeting:
            summary.append("Zoom")

        return " | ".join(summary)
