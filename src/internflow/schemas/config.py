"""Pydantic configuration schema for YAML input."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, ValidationError


class PolicyConfig(BaseModel):
    max_active_candidacies: int | None = Field(default=None, gt=0)
    max_postings_per_organization: int | None = Field(default=None, gt=0)
    senior_year_threshold: int | None = Field(default=None, ge=1)


class LoggingConfig(BaseModel):
    level: str | None = None


class AppConfig(BaseModel):
    policy: PolicyConfig = Field(default_factory=PolicyConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def to_settings(self) -> dict[str, Any]:
        settings: dict[str, Any] = {}
        policy_settings = self.policy.model_dump(exclude_none=True)
        if policy_settings:
            settings["policy"] = policy_settings
        return settings


def load_config(raw: Any) -> AppConfig:
    if not isinstance(raw, dict):
        raise ValidationError.from_exception_data(
            "AppConfig",
            [{"type": "dict_type", "loc": ("config",), "input": raw}],
        )
    return AppConfig.model_validate(raw)
