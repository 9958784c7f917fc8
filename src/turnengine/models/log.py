"""Action log entries and the exportable replay log."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field


class EntryKind(str, Enum):
    """What a log entry records."""

    ACTION = "action"
    FORCE_END_PHASE = "force_end_phase"
    TERMINATE = "terminate"


class ActionLogEntry(BaseModel):
    """One committed transition.

    ``draws`` are the primitive random floats the reducer consumed, in call
    order. ``state_digest`` fingerprints the canonical state right after the
    commit so a replay can detect divergence at the exact entry.
    """

    sequence: int
    kind: EntryKind = EntryKind.ACTION
    action_name: Optional[str] = None
    payload: dict[str, Any] = Field(default_factory=dict)
    acting_player_id: Optional[str] = None
    client_action_id: Optional[str] = None
    injected: bool = False
    reason: Optional[str] = None
    draws: list[float] = Field(default_factory=list)
    state_digest: Optional[str] = None

    def __str__(self) -> str:
        if self.kind != EntryKind.ACTION:
            return f"#{self.sequence} {self.kind.value}({self.reason or ''})"
        tag = " [injected]" if self.injected else ""
        return f"#{self.sequence} {self.acting_player_id}: {self.action_name}({self.payload}){tag}"


class ReplayLog(BaseModel):
    """Ordered entries plus everything needed to rebuild them.

    The seed together with ``players``/``options`` (the initial-state
    descriptor) and the entries fully determine canonical state at every
    version, provided the game definition version matches.
    """

    game: str
    game_version: str = "1"
    seed: int
    players: list[str]
    options: dict[str, Any] = Field(default_factory=dict)
    initial_digest: Optional[str] = None
    entries: list[ActionLogEntry] = Field(default_factory=list)
    created_at: str = Field(default_factory=lambda: datetime.now().isoformat())

    @property
    def final_version(self) -> int:
        return len(self.entries)

    def __str__(self) -> str:
        lines = [f"Replay {self.game} v{self.game_version} (seed={self.seed}, players={self.players})"]
        for entry in self.entries:
            lines.append(f"  {entry}")
        return "\n".join(lines)

    def to_yaml(self) -> str:
        """Serialize the log to a YAML string."""
        data = self.model_dump(mode="json")
        return yaml.safe_dump(data, default_flow_style=False, allow_unicode=True, sort_keys=False)

    @classmethod
    def from_yaml(cls, text: str) -> "ReplayLog":
        return cls.model_validate(yaml.safe_load(text))

    def save_to_file(self, filepath: str) -> None:
        """Serialize the log to a YAML file."""
        with open(filepath, "w", encoding="utf-8") as f:
            f.write(self.to_yaml())

    @classmethod
    def load_from_file(cls, filepath: str) -> "ReplayLog":
        """Load a log from a YAML file."""
        with open(filepath, "r", encoding="utf-8") as f:
            return cls.from_yaml(f.read())
