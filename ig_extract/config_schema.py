from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

PositiveInt = Annotated[int, Field(ge=1)]
NonNegativeInt = Annotated[int, Field(ge=0)]
RootPath = list[Union[NonNegativeInt, str]]


def _normalize_name_list(values: list[str]) -> list[str]:
    out: list[str] = []
    seen: set[str] = set()

    for item in values:
        name = (item or "").strip()
        if not name or name in seen:
            continue
        seen.add(name)
        out.append(name)
    return out


class ExtractionConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    max_search_depth: PositiveInt = 6
    markers: list[str] = Field(
        default_factory=lambda: ["window._sharedData", "__additionalDataLoaded"]
    )
    script_ids: list[str] = Field(default_factory=lambda: ["__NEXT_DATA__"])
    extra_root_paths: list[RootPath] = Field(default_factory=list)
    meta_fallback: bool = True

    @field_validator("markers", "script_ids")
    @classmethod
    def _normalize_names(cls, v: list[str]) -> list[str]:
        return _normalize_name_list(v)

    @field_validator("extra_root_paths")
    @classmethod
    def _paths_must_be_non_empty(cls, v: list[RootPath]) -> list[RootPath]:
        for path in v:
            if not path:
                raise ValueError("root paths must contain at least one step")
            for step in path:
                if isinstance(step, str) and not step.strip():
                    raise ValueError("root path keys must be non-empty")
        return v


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    path: str | None = None
    level: Literal["DEBUG", "INFO", "WARN", "ERROR"] = "INFO"


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
