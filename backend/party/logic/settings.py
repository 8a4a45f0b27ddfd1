"""Centralized gameplay settings for a party room."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class GameSettings(BaseModel):
    """Tunable rules shared by every room on a server.

    Frozen so a room can hold a reference without defensive copies.
    """

    model_config = ConfigDict(frozen=True)

    hand_size: int = Field(default=6, ge=1, le=20)
    turn_duration_seconds: float = Field(default=45, gt=0)
    vote_duration_seconds: float = Field(default=30, gt=0)
    min_players: int = Field(default=2, ge=2)
    default_prompt_total: int = Field(default=2, ge=1)
    max_prompt_total: int = Field(default=50, ge=1)
    chat_log_limit: int = Field(default=50, ge=1)

    def clamp_prompt_total(self, value: int | None) -> int:
        """Bound a requested prompt count to [1, max_prompt_total].

        Missing or zero values fall back to the default count.
        """
        if not value:
            return min(self.default_prompt_total, self.max_prompt_total)
        return max(1, min(value, self.max_prompt_total))
