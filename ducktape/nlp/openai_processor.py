from datetime import datetime
from zoneinfo import ZoneInfo
import logging

from openai import AsyncOpenAI, OpenAIError

from ..config.manager import ConfigManager
from .command_string import COMMAND_PREFIX, normalize_draft_text
from .errors import UpstreamFailure

logger = logging.getLogger(__name__)


class OpenAIDraftSource:
    """Ask OpenAI for a skeleton ducktape command.

    Only the draft comes from the model; the enhancement pipeline fixes
    times, invitees and recurrence afterwards.
    """

    def __init__(self, config: ConfigManager, client: AsyncOpenAI = None):
        self.config = config
        self.client = client or AsyncOpenAI(api_key=config.get_openai_key())
        self.local_timezone = ZoneInfo(config.get('app.timezone', 'America/Los_Angeles'))

    def _system_prompt(self, current_time: datetime) -> str:
        default_calendar = self.config.get('app.default_calendar', 'Calendar')
        reminder_list = self.config.get('app.default_reminder_list', 'Reminders')
        note_folder = self.config.get('app.default_note_folder', 'Notes')
        next_hour = min(current_time.hour + 1, 23)

        return f"""You are a command line interface parser that converts natural language into ducktape commands.
        Current time is: {current_time.strftime('%Y-%m-%d %H:%M %Z')}
        Default calendar: {default_calendar}

        For calendar events, use the format:
        ducktape calendar create "<title>" <date> <start_time> <end_time> "<calendar>" [--email "<email1>,<email2>"] [--contacts "<name1>,<name2>"] [--location "<place>"] [--repeat daily|weekly|monthly|yearly] [--interval N] [--until YYYY-MM-DD] [--count N] [--zoom]

        For reminders, use the format:
        ducktape reminder create "<title>" <date> <time> <time> "{reminder_list}"

        For notes, use the format:
        ducktape note create "<title>" <date> 00:00 01:00 "{note_folder}"

        Rules:
        1. If no date is specified, use today's date ({current_time.strftime('%Y-%m-%d')})
        2. If no time is specified, use the next hour ({next_hour:02d}:00) for the start time and add 1 hour for the end time
        3. Use 24-hour format (HH:MM) for times
        4. Use YYYY-MM-DD format for dates
        5. Always include both start and end times
        6. If no calendar is specified, use "{default_calendar}"
        7. Put names of people to invite in --contacts and email addresses in --email
        8. Multiple emails or names are comma-separated
        9. Ignore phrases like 'to say', 'saying', 'that says' when determining contacts
        10. Respond with exactly one command and nothing else
        """

    async def draft(self, sanitized_input: str) -> str:
        """Return a skeleton ducktape command for the input"""
        current_time = datetime.now(self.local_timezone)
        user_prompt = f"Current date and time: {current_time.strftime('%Y-%m-%d %H:%M')}\n\n{sanitized_input}"

        logger.debug(f"Requesting draft from OpenAI for: {sanitized_input}")
        try:
            response = await self.client.chat.completions.create(
                model=self.config.get('openai.model', 'gpt-4o-mini'),
                messages=[
                    {"role": "system", "content": self._system_prompt(current_time)},
                    {"role": "user", "content": user_prompt}
                ],
                temperature=self.config.get('openai.temperature', 0.3),
                max_tokens=self.config.get('openai.max_tokens', 150),
            )
        except OpenAIError as e:
            logger.error(f"OpenAI request failed: {e}")
            raise UpstreamFailure(f"OpenAI request failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise UpstreamFailure("OpenAI returned an empty response")

        command = self.pick_command(content)
        logger.debug(f"Raw draft from OpenAI: {command}")
        return command

    @staticmethod
    def pick_command(content: str) -> str:
        """First line that looks like a ducktape command, else the whole reply"""
        content = content.strip().strip("`")
        for line in content.splitlines():
            line = normalize_draft_text(line)
            if line.lower().startswith(COMMAND_PREFIX + " "):
                return line
        return normalize_draft_text(content)
