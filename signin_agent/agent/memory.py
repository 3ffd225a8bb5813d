from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class FlowMemory:
    step_index: int = 0
    history: list[dict[str, Any]] = field(default_factory=list)
    last_label: str | None = None
    repeat_count: int = 0
    last_error: str | None = None
    success: bool = False

    def push(self, event: dict[str, Any]) -> None:
        self.history.append(event)

    def note_label(self, label: str) -> int:
        """Record a dispatched label and return how often it ran in a row."""
        if label == self.last_label:
            self.repeat_count += 1
        else:
            self.last_label = label
            self.repeat_count = 1
        return self.repeat_count

    @property
    def dispatched(self) -> int:
        return sum(1 for event in self.history if event.get("kind") == "dispatch")
