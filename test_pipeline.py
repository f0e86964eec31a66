from datetime import date

import pytest

from ducktape.models.command import CommandFamily, DraftCommand, Frequency
from ducktape.nlp.command_string import parse_command, render_command
from ducktape.nlp.errors import OutOfRangeValue, UnsafeCommand, UnresolvedTime
from ducktape.nlp.pipeline import CommandEnhancementPipeline, Stage
from conftest import FIXED_NOW

TODAY = FIXED_NOW.date()
TOMORROW = date(2025, 3, 13)


def times(result):
    return str(result.command.start_time), str(result.command.end_time)


def test_tonight_event(enhance):
    result = enhance("create an event called Team Meeting tonight at 7pm")
    assert times(result) == ("19:00", "20:00")
    assert result.command.date == TODAY
    assert result.command.title == "Team Meeting"
    assert result.rendered == 'ducktape calendar create "Team Meeting" 2025-03-12 19:00 20:00 "Calendar"'
    assert result.hints == []


def test_half_hour(enhance):
    result = enhance("schedule a meeting called Review at 3:30pm")
    assert times(result) == ("15:30", "16:30")
    assert result.command.title == "Review"


def test_midnight(enhance):
    result = enhance("create an event called Midnight Party at 12am")
    assert times(result) == ("00:00", "01:00")
    assert result.command.title == "Midnight Party"


def test_zoom_tomorrow(enhance):
    result = enhance("create a zoom meeting tomorrow at 8am called Important Review")
    assert times(result) == ("08:00", "09:00")
    assert result.command.date == TOMORROW
    assert result.command.title == "Important Review"
    assert result.rendered.endswith("--zoom")
    assert result.rendered.count("--zoom") == 1


def test_invitees(enhance):
    result = enhance("create an event called TestEvent tonight at 10pm and invite Shaun Stuart and Joe Buck")
    assert result.command.invitees == ["Shaun Stuart", "Joe Buck"]
    assert result.command.emails == []
    assert '--contacts "Shaun Stuart,Joe Buck"' in result.rendered
    assert "--email" not in result.rendered


def test_unsafe_command_discarded(pipeline):
    command = 'ducktape calendar create "Party" 2025-03-12 21:00 22:00 "Calendar"; rm -rf /'
    with pytest.raises(UnsafeCommand):
        pipeline.enhance(command, utterance="create an event called Party tonight at 9pm")


def test_unsafe_request_discarded(enhance):
    with pytest.raises(UnsafeCommand):
        enhance("create an event called Party tonight at 9pm; rm -rf /")


def test_recurring_event(enhance):
    result = enhance("Create team workout sessions every Monday and Wednesday at 5pm for the next 10 weeks")
    command = result.command
    assert command.family == CommandFamily.CALENDAR_CREATE
    assert command.title == "Team workout sessions"
    assert command.date == date(2025, 3, 17)
    assert command.recurrence.frequency == Frequency.WEEKLY
    assert command.recurrence.days_of_week == [1, 3]
    assert result.rendered.endswith("--repeat weekly --count 10 --days 1,3")


def test_location_and_emails(enhance):
    result = enhance("Schedule lunch with Sarah and sam@example.com at 12:30pm today at Cafe Luna")
    command = result.command
    assert command.invitees == ["Sarah"]
    assert command.emails == ["sam@example.com"]
    assert command.location == "Cafe Luna"
    assert times(result) == ("12:30", "13:30")
    assert '--location "Cafe Luna"' in result.rendered


def test_interval_out_of_range_rejected(enhance):
    with pytest.raises(OutOfRangeValue):
        enhance("schedule a check every 200 days at 9am")


def test_draft_range_rejected(pipeline):
    command = 'ducktape calendar create "Pills" 2025-03-12 09:00 10:00 "Calendar" --repeat daily --count 600'
    with pytest.raises(OutOfRangeValue):
        pipeline.enhance(command)


def test_missing_time_is_a_hint_not_an_error(enhance):
    result = enhance("schedule a meeting with Bob")
    assert result.command.start_time is None
    assert result.hints == [str(UnresolvedTime())]
    assert result.rendered == 'ducktape calendar create "Meeting" 2025-03-12 00:00 01:00 "Calendar" --contacts "Bob"'


def test_reminder_gets_time_but_no_invitees(enhance):
    result = enhance("remind me to call Mom with Dad in 30 minutes")
    assert result.command.family == CommandFamily.REMINDER_CREATE
    assert times(result) == ("10:00", "11:00")
    assert result.command.invitees == []
    assert result.rendered == 'ducktape reminder create "Call Mom" 2025-03-12 10:00 11:00 "Reminders"'


def test_note_is_only_rendered(enhance):
    result = enhance("take a note about the release plan at 5pm every day")
    assert result.command.family == CommandFamily.NOTE_CREATE
    assert result.command.start_time is None
    assert result.command.recurrence is None
    assert result.hints == []
    assert result.rendered.startswith('ducktape note create "Release plan" 2025-03-12 00:00 01:00 "Notes"')


def test_unrecognized_passes_through(pipeline, enhance):
    result = enhance("what's the weather like")
    assert not result.recognized
    assert result.rendered is None

    command = "ducktape calendar list"
    result = pipeline.enhance(command)
    assert not result.recognized
    assert result.rendered == command


def test_llm_time_corrected_from_request(pipeline):
    draft = 'ducktape calendar create "Team Meeting" 2025-03-12 07:00 08:00 "Calendar"'
    result = pipeline.enhance(draft, utterance="create an event called Team Meeting tonight at 7pm")
    assert times(result) == ("19:00", "20:00")


def test_llm_date_kept_without_date_phrase(pipeline):
    draft = 'ducktape calendar create "Sync" 2025-03-20 09:00 10:00 "Work"'
    result = pipeline.enhance(draft, utterance="sync on the 20th at 3pm")
    assert result.command.date == date(2025, 3, 20)
    assert times(result) == ("15:00", "16:00")
    assert result.command.target == "Work"


def test_draft_repair(pipeline):
    draft = ('ducktape calendar create ""Planning"" tomorrow 14:00 2025-03-13 15:00 "Calendar" '
             '--email "Jane Smith,jane@x.com"')
    result = pipeline.enhance(draft, utterance="planning with Jane Smith")
    command = result.command
    assert command.date == TOMORROW
    assert times(result) == ("14:00", "15:00")
    assert command.invitees == ["Jane Smith"]
    assert command.emails == ["jane@x.com"]
    assert command.title == "Planning"


def test_existing_flags_not_duplicated(pipeline):
    draft = ('ducktape calendar create "Standup" 2025-03-12 09:00 10:00 "Calendar" '
             '--contacts "Ann" --email "ann@x.com" --repeat weekly --zoom')
    result = pipeline.enhance(draft, utterance="zoom standup weekly with Ann and ANN@x.com at 9am")
    assert result.rendered.count("--zoom") == 1
    assert result.rendered.count("--repeat") == 1
    assert result.command.invitees == ["Ann"]
    assert result.command.emails == ["ann@x.com"]


def test_title_ending_in_quote_survives_rerun(pipeline, enhance):
    first = enhance('create an event called Movie "Up" tonight at 7pm')
    assert first.command.title == 'Movie "Up"'
    assert first.rendered == 'ducktape calendar create "Movie \\"Up\\"" 2025-03-12 19:00 20:00 "Calendar"'
    again = pipeline.enhance(first.rendered)
    assert again.command.title == 'Movie "Up"'
    assert times(again) == ("19:00", "20:00")


def test_day_after_tomorrow(enhance):
    result = enhance("create an event called Review the day after tomorrow at 9am")
    assert result.command.date == date(2025, 3, 14)
    assert result.command.title == "Review"
    assert times(result) == ("09:00", "10:00")


def test_lone_midnight_stays_in_title(enhance):
    result = enhance("create an event called Midnight Snack tomorrow")
    assert result.command.title == "Midnight Snack"
    assert result.command.start_time is None
    assert result.command.date == TOMORROW
    assert result.hints == [str(UnresolvedTime())]
    assert result.rendered == 'ducktape calendar create "Midnight Snack" 2025-03-13 00:00 01:00 "Calendar"'


def test_until_clock_time_keeps_series_open(enhance):
    result = enhance("schedule standup every day from 9am until 9:15am")
    assert times(result) == ("09:00", "10:00")
    assert result.command.recurrence.end_date is None
    assert "--until" not in result.rendered


IDEMPOTENCE_COMMANDS = [
    "create an event called Team Meeting tonight at 7pm",
    "create a zoom meeting tomorrow at 8am called Important Review",
    "create an event called TestEvent tonight at 10pm and invite Shaun Stuart and Joe Buck",
    "Create team workout sessions every Monday and Wednesday at 5pm for the next 10 weeks",
    "Schedule lunch with Sarah and sam@example.com at 12:30pm today at Cafe Luna",
    "schedule team sync every 2 weeks until March 1 at 10am",
    "schedule a meeting with Bob",
    "remind me to call Mom in 30 minutes",
    'create an event called Movie "Up" tonight at 7pm',
    "create an event called Review the day after tomorrow at 9am",
    "create an event called Midnight Snack tomorrow",
]


@pytest.mark.parametrize("utterance", IDEMPOTENCE_COMMANDS)
def test_enhance_is_idempotent(pipeline, enhance, utterance):
    first = enhance(utterance)
    assert pipeline.enhance(first.rendered).rendered == first.rendered
    assert pipeline.enhance(first.rendered, utterance=first.rendered).rendered == first.rendered
    assert pipeline.enhance(first.command).rendered == first.rendered


def test_input_draft_not_mutated(pipeline):
    draft = DraftCommand(source_text="schedule a zoom meeting tomorrow at 9am")
    pipeline.enhance(draft)
    assert draft.family == CommandFamily.UNRECOGNIZED
    assert draft.title is None
    assert not draft.is_virtual_meeting


def test_render_parse_round_trip_keeps_fields(enhance):
    result = enhance("schedule team sync with Ann every 2 weeks until March 1 at 10am at Head Office")
    parsed, remainder = parse_command(result.rendered, TODAY)
    assert remainder == ""
    assert render_command(parsed, TODAY) == result.rendered
    assert parsed.recurrence.interval == 2
    assert parsed.recurrence.end_date == date(2026, 3, 1)
    assert parsed.location == "Head Office"


class RecordingStage(Stage):
    def __init__(self, name, log):
        self.name = name
        self.log = log

    def apply(self, draft):
        self.log.append(self.name)
        return draft


def test_stages_run_in_order(clock):
    log = []
    pipeline = CommandEnhancementPipeline(clock=clock)
    pipeline.stages = [RecordingStage(stage.name, log) for stage in pipeline.stages]
    draft = 'ducktape calendar create "Standup" 2025-03-12 09:00 10:00 "Calendar"'
    pipeline.enhance(draft)
    assert log == ["verbs", "time", "entities", "recurrence", "modality", "validate"]


def test_default_targets_from_config(clock):
    pipeline = CommandEnhancementPipeline(
        default_targets={CommandFamily.CALENDAR_CREATE: "Work"}, clock=clock
    )
    result = pipeline.enhance("schedule standup at 9am", utterance="schedule standup at 9am")
    assert result.command.target == "Work"
