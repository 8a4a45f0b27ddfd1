"""Party server configuration via environment variables."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from party.logic.settings import GameSettings
from shared.validators import StringListEnvSettingsSource, parse_string_list

if TYPE_CHECKING:
    from pydantic_settings.sources.base import PydanticBaseSettingsSource


class PartyServerSettings(BaseSettings):
    model_config = {"env_prefix": "PARTY_"}

    cors_origins: list[str] = ["http://localhost:3000"]
    # None means the catalog bundled with the package
    cards_path: str | None = None
    prompts_path: str | None = None
    max_rooms: int = Field(default=500, ge=1)
    enforce_phase_timers: bool = False

    hand_size: int = Field(default=6, ge=1, le=20)
    turn_duration_seconds: float = Field(default=45, gt=0)
    vote_duration_seconds: float = Field(default=30, gt=0)
    min_players: int = Field(default=2, ge=2)
    default_prompt_total: int = Field(default=2, ge=1)
    max_prompt_total: int = Field(default=50, ge=1)
    chat_log_limit: int = Field(default=50, ge=1)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        return parse_string_list(v)

    def game_settings(self) -> GameSettings:
        """Rules shared by every room on this server."""
        return GameSettings(
            hand_size=self.hand_size,
            turn_duration_seconds=self.turn_duration_seconds,
            vote_duration_seconds=self.vote_duration_seconds,
            min_players=self.min_players,
            default_prompt_total=self.default_prompt_total,
            max_prompt_total=self.max_prompt_total,
            chat_log_limit=self.chat_log_limit,
        )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, StringListEnvSettingsSource(settings_cls), dotenv_settings, file_secret_settings
