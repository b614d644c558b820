"""Data models for shooting-plan generation.

UserInput is the immutable form submission, PlanRecord is one validated
shooting plan, and PlanBatch is the outcome of one generation request.
``PLAN_FIELDS`` is the single source of truth for the eighteen plan fields:
the request schema, the textual contract and the PlanRecord aliases are all
derived from or checked against it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Literal

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

PORTRAIT = "9:16"
LANDSCAPE = "16:9"
ASPECT_RATIOS: tuple[str, str] = (PORTRAIT, LANDSCAPE)

AspectRatio = Literal["9:16", "16:9"]


def normalize_aspect_ratio(value: object) -> str:
    """Coerce any value to one of the two supported aspect ratios.

    Only the exact literal ``"16:9"`` maps to landscape; everything else,
    including ``None``, ``"16x9"`` and ``"square"``, maps to ``"9:16"``.
    """
    return LANDSCAPE if value == LANDSCAPE else PORTRAIT


# (wire name, description) for every required plan field, in contract order.
PLAN_FIELDS: tuple[tuple[str, str], ...] = (
    ("title", "Artistic name for the plan"),
    ("targetAspectRatio", "Frame ratio, exactly '9:16' or '16:9'"),
    ("imagePrompt", "English prompt for a minimalist black and white line drawing sketch"),
    # Camera settings
    ("focalLength", "Exact focal length, e.g. 55mm"),
    ("aperture", "Aperture, e.g. F4.0"),
    ("shutterSpeed", "Shutter speed, e.g. 1/200s"),
    ("iso", "ISO value"),
    ("whiteBalance", "White balance mode or Kelvin value"),
    ("colorTint", "Colour tint shift, e.g. M1 A2"),
    # Positioning
    ("distance", "Exact distance to the subject, e.g. 1.5 m"),
    ("angle", "Short description of the shooting angle, e.g. low angle"),
    # Step-by-step guidance
    (
        "lightingGuide",
        "Foolproof lighting and placement instruction, e.g. "
        "'stand in the shade, put the model in the sun, face towards the light'",
    ),
    (
        "compositionGuide",
        "Foolproof framing instruction referencing the grid lines, e.g. "
        "'put the left eye on the upper-right intersection'",
    ),
    (
        "photographerPosition",
        "Photographer body position, e.g. 'crouch, lens level with the knees, shoot upwards'",
    ),
    # Directing
    ("poseAction", "What the model does"),
    ("poseEyes", "Where and how the model looks"),
    ("modelDirecting", "An exact line to say to the model"),
    # Advice
    ("expertAdvice", "One-sentence finishing touch or pitfall to avoid"),
)

PLAN_FIELD_NAMES: tuple[str, ...] = tuple(name for name, _ in PLAN_FIELDS)


@dataclass(frozen=True)
class UserInput:
    """One form submission.

    Constructed once per generation request and never mutated afterwards.
    """

    person: str
    location: str
    environment: str
    style: str
    portrait_count: int = 3
    landscape_count: int = 3

    @property
    def total(self) -> int:
        """Total number of plans requested."""
        return self.portrait_count + self.landscape_count

    def validate(self, max_per_orientation: int = 5) -> None:
        """Validate the submission.

        A total of zero is valid: it means "nothing to generate".

        Args:
            max_per_orientation: Upper bound for each of the two counts.

        Raises:
            ValueError: If a text field is blank or a count is out of range,
                with a message suitable for display to the user.
        """
        for name in ("person", "location", "environment", "style"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"{name.capitalize()} description must not be empty")

        for name in ("portrait_count", "landscape_count"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer, got {value!r}")
            if value < 0 or value > max_per_orientation:
                raise ValueError(f"{name} must be 0-{max_per_orientation}, got {value}")


class PlanRecord(BaseModel):
    """One validated shooting plan.

    Attribute names are snake_case; the wire format (backend JSON and the
    HTTP API) uses the camelCase aliases from :data:`PLAN_FIELDS`.  Camera
    parameters stay display strings because they mix numbers and units.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
        str_strip_whitespace=True,
        str_min_length=1,
        coerce_numbers_to_str=True,
        protected_namespaces=(),
    )

    title: str
    target_aspect_ratio: AspectRatio = PORTRAIT
    image_prompt: str

    focal_length: str
    aperture: str
    shutter_speed: str
    iso: str
    white_balance: str
    color_tint: str

    distance: str
    angle: str

    lighting_guide: str
    composition_guide: str
    photographer_position: str

    pose_action: str
    pose_eyes: str
    model_directing: str

    expert_advice: str

    @field_validator("target_aspect_ratio", mode="before")
    @classmethod
    def _coerce_aspect_ratio(cls, value: object) -> str:
        coerced = normalize_aspect_ratio(value)
        if value != coerced:
            logger.debug(f"Coerced aspect ratio {value!r} to {coerced!r}")
        return coerced

    @property
    def is_portrait(self) -> bool:
        return self.target_aspect_ratio == PORTRAIT

    def to_wire(self) -> dict[str, str]:
        """Return the record as a camelCase dictionary."""
        return self.model_dump(by_alias=True)


@dataclass
class PlanBatch:
    """Outcome of one generation request.

    Attributes:
        plans: Validated plans in backend order.
        requested: Number of plans the user asked for.
        dropped: Number of records rejected during validation.
        warnings: Human-readable notes (count shortfall, order mismatch).
    """

    plans: list[PlanRecord] = field(default_factory=list)
    requested: int = 0
    dropped: int = 0
    warnings: list[str] = field(default_factory=list)

    @classmethod
    def empty(cls) -> PlanBatch:
        """Result for a request with nothing to generate."""
        return cls()

    @property
    def shortfall(self) -> int:
        return max(self.requested - len(self.plans), 0)
