from __future__ import annotations

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class EngineConfig(BaseModel):
    max_document_chars: int = 2_000_000
    max_candidates: int = 25
    max_supplied_selectors: int = 10
    max_alternatives: int = 5
    max_descriptors: int = 10
    ambiguous_confidence_cap: float = 0.3
    generated_confidence_cap: float = 0.1
    text_min_length: int = 3
    text_max_length: int = 50
    max_class_combination: int = 3
    test_id_attributes: list[str] = Field(
        default_factory=lambda: ["data-testid", "data-test", "data-cy", "data-qa"]
    )

    @field_validator("ambiguous_confidence_cap", "generated_confidence_cap")
    @classmethod
    def validate_cap(cls, value: float) -> float:
        if not 0.0 <= value <= 1.0:
            raise ValueError("confidence caps must be between 0 and 1")
        return value

    @field_validator(
        "max_document_chars",
        "max_candidates",
        "max_supplied_selectors",
        "max_alternatives",
        "max_descriptors",
        "max_class_combination",
    )
    @classmethod
    def validate_limit(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("limits must be positive")
        return value

    @field_validator("test_id_attributes")
    @classmethod
    def validate_test_id_attributes(cls, value: list[str]) -> list[str]:
        normalized = [item.strip().lower() for item in value]
        invalid = [item for item in normalized if not item.startswith("data-")]
        if invalid:
            raise ValueError(f"Unsupported test id attributes: {', '.join(invalid)}")
        return normalized

    @model_validator(mode="after")
    def validate_text_bounds(self) -> EngineConfig:
        if self.text_min_length < 0 or self.text_min_length >= self.text_max_length:
            raise ValueError("text_min_length must be non-negative and below text_max_length")
        return self


class SelectorHint(BaseModel):
    """Best guess proposed by the oracle. Only ever treated as candidate strings."""

    primary_selector: str = ""
    element_identifier: str | None = None
    alternative_selectors: list[str] = Field(default_factory=list)

    @property
    def supplied_selectors(self) -> list[str]:
        selectors = [self.primary_selector, *self.alternative_selectors]
        return [item.strip() for item in selectors if item and item.strip()]

    @property
    def text_hint(self) -> str:
        return (self.element_identifier or "").strip()


class NotFoundHint(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    not_found: Literal[True] = Field(default=True, alias="NOT_FOUND")
    reason: str = ""
    suggestions: list[str] = Field(default_factory=list)


class NotFoundResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    not_found: Literal[True] = Field(default=True, alias="NOT_FOUND")
    reason: str
    suggestions: list[str] = Field(default_factory=list)


class InjectionPoint(BaseModel):
    selector: str
    confidence: float = Field(ge=0.0, le=1.0)
    alternative_selectors: list[str] = Field(default_factory=list)
    reasoning: str = ""
    original_text: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @model_validator(mode="after")
    def dedupe_alternatives(self) -> InjectionPoint:
        seen = {self.selector}
        alternatives: list[str] = []
        for item in self.alternative_selectors:
            if item and item not in seen:
                seen.add(item)
                alternatives.append(item)
        self.alternative_selectors = alternatives
        return self
