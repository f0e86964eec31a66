from pydantic import BaseModel
from typing import Optional, List, Any, Dict

from .command import DraftCommand


class CommandRequest(BaseModel):
    command: str


class CommandResponse(BaseModel):
    success: bool
    message: str
    command: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    hints: List[str] = []
    error: Optional[str] = None

    @classmethod
    def from_result(cls, result) -> "CommandResponse":
        """Build a response from a pipeline EnhancementResult"""
        command: DraftCommand = result.command
        if not result.recognized:
            return cls(
                success=False,
                message="Could not tell whether this is an event, a reminder or a note",
                command=result.rendered,
                hints=result.hints,
                error="Unrecognized command",
            )
        return cls(
            success=True,
            message=f"Parsed {command.family.value} '{command.title}'",
            command=result.rendered,
            data=command.to_dict(),
            hints=result.hints,
        )

    @classmethod
    def from_error(cls, error: Exception) -> "CommandResponse":
        return cls(
            success=False,
            message=str(error),
            hints=[error.hint] if getattr(error, "hint", None) else [],
            error=type(error).__name__,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary"""
        return self.model_dump()
