"""Prompt models for phase templates."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator


class PhasePrompt(BaseModel):
    """A prompt template bound to one workflow phase."""

    phase: str = Field(..., description="Workflow phase the template applies to.")
    template: str = Field(
        ...,
        description="Prompt text; {number}, {title}, {url}, {body}, {slug}, {phase} and {repo} "
        "are substituted at launch.",
    )
    description: str | None = Field(default=None, description="Optional note shown in listings.")
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("phase")
    @classmethod
    def _normalize_phase(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("Phase name must not be empty")
        return normalized

    @field_validator("template")
    @classmethod
    def _require_template(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Prompt template must not be empty")
        return value


__all__ = ["PhasePrompt"]
