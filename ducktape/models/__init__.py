from .command import ClockTime, CommandFamily, DraftCommand, Frequency, RecurrenceDescriptor
from .command_response import CommandRequest, CommandResponse

__all__ = [
    'ClockTime', 'CommandFamily', 'DraftCommand', 'Frequency', 'RecurrenceDescriptor',
    'CommandRequest', 'CommandResponse',
]
