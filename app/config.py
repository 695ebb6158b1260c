from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from app.core.masking.mapping import DEFAULT_LOCALE_DATE_FORMAT


class PolicyDefinition(BaseModel):
    model_config = ConfigDict(extra="allow")

    # mask: leaks found after masking are logged and the request proceeds.
    # block: any leak aborts the request before egress.
    mode: Literal["mask", "block"] = "mask"
    locale_date_format: str = DEFAULT_LOCALE_DATE_FORMAT

    @field_validator("locale_date_format")
    @classmethod
    def _validate_locale_date_format(cls, value: str) -> str:
        try:
            value.format(year=2000, month=1, day=1)
        except (KeyError, IndexError, ValueError) as exc:
            raise ValueError(
                f"locale_date_format may only use {{year}}, {{month}} and {{day}} fields: {exc}"
            ) from exc
        return value


class PolicyConfig(BaseModel):
    model_config = ConfigDict(extra="allow")

    default_policy: str
    policies: dict[str, PolicyDefinition]

    @model_validator(mode="after")
    def _validate_references(self) -> "PolicyConfig":
        if self.default_policy not in self.policies:
            raise ValueError(f"default_policy '{self.default_policy}' is not defined in policies")
        return self


def load_policy_config(path: str | Path) -> PolicyConfig:
    policy_path = Path(path)
    with policy_path.open("r", encoding="utf-8") as file:
        raw: dict[str, Any] = yaml.safe_load(file) or {}
    return PolicyConfig.model_validate(raw)
