from __future__ import annotations

import os
from pathlib import Path
from typing import ClassVar

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources import PydanticBaseSettingsSource, YamlConfigSettingsSource

from adapters.layout.positioning import MAX_OVERLAP_PASSES
from domain.models import Alignment, LayoutOptions, Padding

DEFAULT_CONFIG_PATH = Path("config/layout.yaml")

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


class LayoutSettings(BaseModel):
    horizontal_spacing: float | None = Field(default=None, gt=0)
    vertical_spacing: float | None = Field(default=None, ge=0)
    padding_x: float = Field(default=150.0, ge=0)
    padding_y: float = Field(default=150.0, ge=0)
    alignment: Alignment = "center"
    max_overlap_passes: int = Field(default=MAX_OVERLAP_PASSES, ge=1)

    @field_validator("alignment", mode="before")
    @classmethod
    def normalize_alignment(cls, value: object) -> str:
        return str(value).strip().lower() if value else "center"

    def to_layout_options(self) -> LayoutOptions:
        # Unset spacings stay unset so containers fall back to their own defaults.
        values: dict[str, object] = {
            "padding": Padding(x=self.padding_x, y=self.padding_y),
            "alignment": self.alignment,
        }
        if self.horizontal_spacing is not None:
            values["horizontal_spacing"] = self.horizontal_spacing
        if self.vertical_spacing is not None:
            values["vertical_spacing"] = self.vertical_spacing
        return LayoutOptions(**values)


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="WFL_", env_nested_delimiter="__")

    layout: LayoutSettings = LayoutSettings()
    log_level: str = "WARNING"

    _yaml_path: ClassVar[Path | None] = None

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: object) -> str:
        level = str(value or "WARNING").strip().upper()
        if level not in _LOG_LEVELS:
            msg = f"log_level must be one of {sorted(_LOG_LEVELS)}"
            raise ValueError(msg)
        return level

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        sources: list[PydanticBaseSettingsSource] = [
            init_settings,
            env_settings,
            dotenv_settings,
            file_secret_settings,
        ]
        if cls._yaml_path:
            sources.append(YamlConfigSettingsSource(settings_cls, yaml_file=cls._yaml_path))
        return tuple(sources)


def load_settings(config_path: Path | None = None) -> AppSettings:
    env_path = os.getenv("WFL_CONFIG_PATH")
    resolved_path: Path | None = None

    if config_path is not None:
        resolved_path = config_path
    elif env_path:
        resolved_path = Path(env_path)
    elif DEFAULT_CONFIG_PATH.exists():
        resolved_path = DEFAULT_CONFIG_PATH

    previous = AppSettings._yaml_path
    try:
        if resolved_path is not None:
            if not resolved_path.exists():
                msg = f"Config file not found: {resolved_path}"
                raise FileNotFoundError(msg)
            AppSettings._yaml_path = resolved_path
        return AppSettings()
    finally:
        AppSettings._yaml_path = previous
