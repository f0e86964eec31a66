from .cache import ResponseCache
from .errors import (
    DucktapeError,
    EmptyInput,
    InputTooLong,
    OutOfRangeValue,
    UnresolvedTime,
    UnsafeCommand,
    UpstreamFailure,
)
from .pipeline import CommandEnhancementPipeline, EnhancementResult, Stage
from .processor import NLPProcessor

__all__ = [
    'ResponseCache',
    'DucktapeError', 'EmptyInput', 'InputTooLong', 'OutOfRangeValue',
    'UnresolvedTime', 'UnsafeCommand', 'UpstreamFailure',
    'CommandEnhancementPipeline', 'EnhancementResult', 'Stage',
    'NLPProcessor',
]
