"""Result types for stage execution."""

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel


class StageResult(BaseModel):
    """Result of running one pipeline stage command.

    A timed-out command reports returncode -1.
    """

    stage_name: str
    success: bool
    log_file: Path
    returncode: int
    timestamp: datetime

    @property
    def timed_out(self) -> bool:
        return self.returncode == -1
