"""Pydantic request models for the Shot Guide API.

These models define the JSON schema for every API endpoint.  FastAPI uses
them for automatic request validation, serialisation, and OpenAPI
documentation generation.

Models
------
GeneratePlansRequest
    Payload for ``POST /api/plans`` and ``POST /api/gallery``: the four
    scene descriptions and the two orientation counts.
SketchRequest
    Payload for ``POST /api/sketch``: one plan's image prompt and ratio.
ExportCard / ExportRequest
    Payload for ``POST /api/export``: the cards currently on screen.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator

from shotguide.core.export import SheetEntry
from shotguide.core.models import PORTRAIT, UserInput, normalize_aspect_ratio


class GeneratePlansRequest(BaseModel):
    """Request body for plan generation.

    Attributes:
        person: Who is being photographed.
        location: Where the shoot takes place.
        environment: Light, weather, time of day.
        style: Desired visual style.
        portrait_count: Number of 9:16 plans (0-5).
        landscape_count: Number of 16:9 plans (0-5).
    """

    person: str = Field(..., min_length=1, description="Subject description.")
    location: str = Field(..., min_length=1, description="Shooting location.")
    environment: str = Field(..., min_length=1, description="Light and weather conditions.")
    style: str = Field(..., min_length=1, description="Desired visual style.")
    portrait_count: int = Field(default=3, ge=0, le=5, description="Number of 9:16 plans.")
    landscape_count: int = Field(default=3, ge=0, le=5, description="Number of 16:9 plans.")

    @field_validator("person", "location", "environment", "style")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value.strip()

    def to_user_input(self) -> UserInput:
        return UserInput(
            person=self.person,
            location=self.location,
            environment=self.environment,
            style=self.style,
            portrait_count=self.portrait_count,
            landscape_count=self.landscape_count,
        )


class SketchRequest(BaseModel):
    """Request body for ``POST /api/sketch``.

    Attributes:
        image_prompt: The plan's image prompt.
        aspect_ratio: Target ratio; anything other than ``"16:9"`` means
            ``"9:16"``.
        generation_id: Generation the card belongs to.  When given and no
            longer current for the session, the result is discarded.
    """

    image_prompt: str = Field(..., min_length=1, description="Image prompt of the plan.")
    aspect_ratio: str = Field(default=PORTRAIT, description="'9:16' or '16:9'.")
    generation_id: str | None = Field(default=None, description="Generation the card belongs to.")

    @field_validator("aspect_ratio", mode="before")
    @classmethod
    def _normalise_ratio(cls, value: object) -> str:
        return normalize_aspect_ratio(value)


class ExportCard(BaseModel):
    """One card of the gallery being exported."""

    title: str = Field(..., description="Plan title.")
    aspect_ratio: str = Field(default=PORTRAIT, description="'9:16' or '16:9'.")
    image: str | None = Field(default=None, description="Sketch as a data URI, if available.")

    @field_validator("aspect_ratio", mode="before")
    @classmethod
    def _normalise_ratio(cls, value: object) -> str:
        return normalize_aspect_ratio(value)

    def to_sheet_entry(self) -> SheetEntry:
        return SheetEntry(title=self.title, aspect_ratio=self.aspect_ratio, image=self.image)


class ExportRequest(BaseModel):
    """Request body for ``POST /api/export``."""

    format: Literal["png", "pdf"] = Field(default="png", description="Export format.")
    cards: list[ExportCard] = Field(..., min_length=1, description="Cards to export.")
