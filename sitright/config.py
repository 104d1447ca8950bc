"""Application settings.

Settings are frozen pydantic models with their defaults inline. Loading and
saving is the job of whatever settings store the host uses; it hands us a
mapping and settings_from_dict() validates it into typed settings.

The posture core keeps its own dataclasses (RuleToggles, ReminderConfig,
IgnorePeriod); the models here convert into them.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sitright.ignore_periods import IgnorePeriod, parse_time
from sitright.notifications import DEFAULT_MIN_INTERVAL_MS
from sitright.reminder import ReminderConfig
from sitright.rules import DEFAULT_THRESHOLDS, RuleToggles

APP_NAME = "SitRight"

DETECTION_INTERVAL_MS = 500
DEFAULT_SENSITIVITY = 0.5


class _Section(BaseModel):
    # Unknown keys are dropped so older or newer settings files still load.
    model_config = ConfigDict(frozen=True, extra="ignore")


class RuleSettings(_Section):
    forward_head: bool = True
    slouch: bool = False
    head_tilt: bool = True
    too_close: bool = True
    shoulder_asymmetry: bool = True

    def toggles(self) -> RuleToggles:
        return RuleToggles(**self.model_dump())


class IgnorePeriodSettings(_Section):
    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def _check_time(cls, value: str) -> str:
        parse_time(value)
        return value

    def period(self) -> IgnorePeriod:
        return IgnorePeriod(start=self.start, end=self.end)


class DetectionSettings(_Section):
    enabled: bool = True
    interval_ms: int = Field(DETECTION_INTERVAL_MS, gt=0)
    sensitivity: float = Field(DEFAULT_SENSITIVITY, ge=0.0, le=1.0)
    rules: RuleSettings = Field(default_factory=RuleSettings)


class ReminderSettings(_Section):
    blur: bool = True
    notification: bool = True
    sound: bool = False
    delay_ms: float = Field(5000, ge=0)
    fade_out_duration_ms: float = Field(1500, ge=0)
    ignore_periods: tuple[IgnorePeriodSettings, ...] = ()
    weekend_ignore: bool = False

    @classmethod
    def from_config(cls, config: ReminderConfig) -> ReminderSettings:
        return cls.model_validate(dataclasses.asdict(config))

    def to_config(self) -> ReminderConfig:
        values = self.model_dump(exclude={"ignore_periods"})
        return ReminderConfig(
            ignore_periods=tuple(p.period() for p in self.ignore_periods), **values
        )


class AdvancedSettings(_Section):
    debug_mode: bool = False
    # Nominal (unscaled) thresholds keyed by rule field name, e.g. {"forward_head": 12.0}
    custom_thresholds: Optional[dict[str, float]] = None
    notification_interval_ms: float = Field(DEFAULT_MIN_INTERVAL_MS, ge=0)

    @field_validator("custom_thresholds")
    @classmethod
    def _known_rules(cls, value: Optional[dict[str, float]]) -> Optional[dict[str, float]]:
        if value:
            valid = {f.name for f in dataclasses.fields(DEFAULT_THRESHOLDS)}
            unknown = set(value) - valid
            if unknown:
                raise ValueError(f"Unknown threshold override(s): {', '.join(sorted(unknown))}")
        return value


class Settings(_Section):
    detection: DetectionSettings = Field(default_factory=DetectionSettings)
    reminder: ReminderSettings = Field(default_factory=ReminderSettings)
    advanced: AdvancedSettings = Field(default_factory=AdvancedSettings)


DEFAULT_SETTINGS = Settings()


def settings_from_dict(data: Mapping[str, Any]) -> Settings:
    """Build Settings from a nested mapping.

    Missing sections and keys take their defaults; unknown keys are ignored.
    Raises pydantic.ValidationError (a ValueError) for values that cannot be
    valid, with every offending field listed.
    """
    return Settings.model_validate(data)
