"""Base model for fencewatch data structures.

Every model inherits from :class:`FenceBaseModel` which provides:

* ``alias_generator=to_camel`` so the camelCase keys published by the
  ESP32 firmware (``fenceActive``, ``soilMoisture`` ...) map to
  snake_case fields.
* A ``model_validator(mode="before")`` that strips placeholder values
  (``None``, ``""``, ``"--"``, NaN) so the field default is used.
* Stashing of the original payload in ``raw`` for models declaring it.
"""

from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

# Placeholder strings meaning "not available".
_SENTINELS = frozenset({"", "--", "NaN", "nan", "null"})


class FenceBaseModel(BaseModel):
    """Frozen base for all fencewatch models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    @staticmethod
    def _clean_dict(values: dict[str, Any]) -> dict[str, Any]:
        """Drop placeholder values so the field default applies."""
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, str) and value.strip() in _SENTINELS:
                continue
            if isinstance(value, float) and math.isnan(value):
                continue
            cleaned[key] = value
        return cleaned

    @model_validator(mode="before")
    @classmethod
    def _clean_placeholder_values(cls, values: Any) -> Any:
        """Strip placeholder values and stash the raw payload where supported."""
        if not isinstance(values, dict):
            return values
        original = dict(values)
        cleaned = FenceBaseModel._clean_dict(original)

        # Only auto-stash raw when the model has the field and the caller did
        # not provide it explicitly.
        if "raw" in cls.model_fields and "raw" not in values:
            cleaned["raw"] = original
        return cleaned
