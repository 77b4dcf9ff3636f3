from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, computed_field


class ClockState(BaseModel):
    """Persistable match clock snapshot.

    ``minutes``/``seconds`` are what the viewer sees: time remaining for a
    countdown clock, time elapsed for a countup clock.
    """

    minutes: int = Field(0, ge=0)
    seconds: int = Field(0, ge=0, lt=60)
    running: bool = False
    overtime: bool = False
    last_persisted_at: Optional[datetime] = None

    @property
    def total_seconds(self) -> int:
        return self.minutes * 60 + self.seconds

    @computed_field  # type: ignore[misc]
    @property
    def display(self) -> str:
        return f"{self.minutes:02d}:{self.seconds:02d}"
