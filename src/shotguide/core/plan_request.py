"""Outbound request construction for the plan-generation backend.

:class:`PlanRequestBuilder` turns a :class:`~shotguide.core.models.UserInput`
into a :class:`PlanRequest`: a system instruction (mentor persona and
equipment constraints), a user prompt carrying the four free-text fields and
the exact per-orientation counts, and a structural contract describing the
eighteen required plan fields.

The contract exists in two equivalent forms:

- :func:`build_plan_schema`: a response-schema object for backends that
  accept first-class schemas.
- :func:`describe_schema`: the same field list, required set and ratio enum
  rendered as plain-text instructions, for backends that do not.

Prompt Structure::

    Background:
    Person: ...
    Location: ...
    Environment: ...
    Desired style: ...

    Create N extremely detailed, beginner-friendly shooting plans.
    Plans 1-P: 9:16 portrait framing.
    Plans P+1-N: 16:9 landscape framing.
    [ordering directive]

Building is pure: nothing here performs I/O.

Usage
-----
::

    builder = PlanRequestBuilder(config)
    request = builder.build(user_input)
    if request is None:
        ...  # zero plans requested, skip the backend entirely
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from .config import ShotguideConfig
from .models import ASPECT_RATIOS, LANDSCAPE, PLAN_FIELDS, PORTRAIT, UserInput

logger = logging.getLogger(__name__)

_ORIENTATION_LABELS = {
    PORTRAIT: "9:16 portrait framing (for phones and social media)",
    LANDSCAPE: "16:9 landscape framing (cinematic, story-driven)",
}

_SYSTEM_INSTRUCTION_TEMPLATE = """\
You are a top portrait-photography mentor with 20 years of experience. You are \
coaching a complete beginner who has never studied photography, shooting with a \
{camera_body} and a {lens} lens, to produce stunning photos.

Design exactly {total} "hand-holding" shooting plans based on the user's input:
{orientation_lines}

Equipment constraints:
1. Respect the lens limits. When background blur is needed and the maximum \
aperture is modest, recommend the long end of the zoom and moving closer.
2. Use the high-resolution sensor: composition may stay slightly loose to allow \
cropping later.
3. Use in-body stabilisation: static shots may go down to 1/60s.

Core requirement: a beginner must be able to follow the plan step by step.
- compositionGuide: no abstract vocabulary. Say "turn on the grid lines and put \
the model's left eye on the upper-right intersection", not "use the rule of thirds".
- lightingGuide: never just "front light" or "backlight". Say "place the model 1 \
metre in front of the window with the face turned 45 degrees towards it".
- photographerPosition: be physically specific, e.g. "do not stand! kneel on one \
knee, hold the camera at chest height, flip the screen up".
- modelDirecting: give an exact line to say, not "smile", e.g. "imagine you just \
bumped into your crush at the street corner".

Output format:
Return a single JSON object with a "plans" array and nothing else: no prose, no \
markdown fences, no comments.
"imagePrompt" is used to draw a sketch; keep it in English and in a minimalist \
black and white line drawing sketch style.
All guidance text must be written in {language}, in an encouraging, clear and \
extremely specific tone, as if teaching hands-on."""


@dataclass(frozen=True)
class PlanRequest:
    """A fully built request for the text backend.

    Attributes:
        system_instruction: Persona and constraints.
        prompt: The user-turn text.
        schema: Structural contract for the response.
        portrait_count: Requested number of 9:16 plans.
        landscape_count: Requested number of 16:9 plans.
        expected_ratios: Ratio sequence the ordering directive asks for.
    """

    system_instruction: str
    prompt: str
    schema: dict[str, Any]
    portrait_count: int
    landscape_count: int
    expected_ratios: tuple[str, ...] = field(default_factory=tuple)

    @property
    def total(self) -> int:
        return self.portrait_count + self.landscape_count


def build_plan_schema(total: int) -> dict[str, Any]:
    """Build the response schema for a batch of *total* plans.

    The schema is an object with a single ``plans`` array whose items carry
    every field from :data:`PLAN_FIELDS` as a required string, with the
    aspect ratio limited to the two supported literals.

    Args:
        total: Exact number of plans expected.

    Returns:
        Schema dictionary in the backend's OpenAPI-subset dialect.
    """
    properties: dict[str, Any] = {}
    for name, description in PLAN_FIELDS:
        prop: dict[str, Any] = {"type": "STRING", "description": description}
        if name == "targetAspectRatio":
            prop["enum"] = list(ASPECT_RATIOS)
        properties[name] = prop

    return {
        "type": "OBJECT",
        "properties": {
            "plans": {
                "type": "ARRAY",
                "minItems": total,
                "maxItems": total,
                "items": {
                    "type": "OBJECT",
                    "properties": properties,
                    "required": [name for name, _ in PLAN_FIELDS],
                },
            }
        },
        "required": ["plans"],
    }


def describe_schema(schema: dict[str, Any]) -> str:
    """Render a plan schema as plain-text output instructions.

    Produces the same constraints as the schema object: the ``plans`` array
    size, every required field with its description, string typing and the
    aspect-ratio enum.

    Args:
        schema: A schema produced by :func:`build_plan_schema`.

    Returns:
        Instruction text to append to the prompt.
    """
    plans = schema["properties"]["plans"]
    items = plans["items"]
    required = items["required"]

    skeleton = {name: "..." for name in required}
    lines = [
        "Respond with JSON only, matching exactly this shape:",
        json.dumps({"plans": [skeleton]}, ensure_ascii=False, indent=2),
        f'The "plans" array must contain exactly {plans["maxItems"]} objects.',
        "Every object must contain all of these fields, each a non-empty string:",
    ]
    for name in required:
        prop = items["properties"][name]
        line = f"- {name}: {prop['description']}"
        if "enum" in prop:
            allowed = " or ".join(f'"{value}"' for value in prop["enum"])
            line += f" (must be exactly {allowed})"
        lines.append(line)
    lines.append("Do not wrap the JSON in markdown fences and do not add comments.")
    return "\n".join(lines)


class PlanRequestBuilder:
    """Builds text-backend requests from user input.

    Args:
        config: Application configuration (persona details, ordering
            preference, count limits).
    """

    def __init__(self, config: ShotguideConfig) -> None:
        self.config = config

    def expected_ratios(self, portrait_count: int, landscape_count: int) -> tuple[str, ...]:
        """Ratio sequence the ordering directive asks the backend for."""
        portrait = (PORTRAIT,) * portrait_count
        landscape = (LANDSCAPE,) * landscape_count
        if self.config.orientation_order == "landscape_first":
            return landscape + portrait
        return portrait + landscape

    def build(self, user_input: UserInput) -> PlanRequest | None:
        """Build the request for *user_input*.

        Args:
            user_input: The form submission.

        Returns:
            The built request, or ``None`` when zero plans were requested;
            the caller must then return an empty result without contacting
            the backend.

        Raises:
            ValueError: If the input fails validation.
        """
        user_input.validate(self.config.max_per_orientation)

        if user_input.total == 0:
            logger.info("Zero plans requested, skipping request build")
            return None

        ratios = self.expected_ratios(user_input.portrait_count, user_input.landscape_count)
        request = PlanRequest(
            system_instruction=self.build_system_instruction(ratios),
            prompt=self.build_prompt(user_input, ratios),
            schema=build_plan_schema(user_input.total),
            portrait_count=user_input.portrait_count,
            landscape_count=user_input.landscape_count,
            expected_ratios=ratios,
        )
        logger.info(
            "Built plan request: %d portrait, %d landscape (%s)",
            user_input.portrait_count,
            user_input.landscape_count,
            self.config.orientation_order,
        )
        return request

    def build_system_instruction(self, ratios: tuple[str, ...]) -> str:
        return _SYSTEM_INSTRUCTION_TEMPLATE.format(
            camera_body=self.config.camera_body,
            lens=self.config.lens,
            total=len(ratios),
            orientation_lines="\n".join(f"{n}. {line}" for n, line in _group_lines(ratios)),
            language=self.config.guidance_language,
        )

    def build_prompt(self, user_input: UserInput, ratios: tuple[str, ...]) -> str:
        parts = [
            "\n".join(
                [
                    "Background:",
                    f"Person: {user_input.person.strip()}",
                    f"Location: {user_input.location.strip()}",
                    f"Environment: {user_input.environment.strip()}",
                    f"Desired style: {user_input.style.strip()}",
                ]
            ),
            "\n".join(
                [f"Create {len(ratios)} extremely detailed, beginner-friendly shooting plans."]
                + [line for _, line in _group_lines(ratios)]
            ),
            _ordering_directive(ratios),
        ]
        return "\n\n".join(part for part in parts if part)


def _group_lines(ratios: tuple[str, ...]) -> list[tuple[int, str]]:
    """Describe each contiguous ratio group as ``Plans a-b: <label>.``"""
    lines: list[tuple[int, str]] = []
    start = 0
    while start < len(ratios):
        ratio = ratios[start]
        end = start
        while end + 1 < len(ratios) and ratios[end + 1] == ratio:
            end += 1
        span = f"Plan {start + 1}" if start == end else f"Plans {start + 1}-{end + 1}"
        count = end - start + 1
        lines.append(
            (len(lines) + 1, f"{span}: {_ORIENTATION_LABELS[ratio]}, {count} in total.")
        )
        start = end + 1
    return lines


def _ordering_directive(ratios: tuple[str, ...]) -> str:
    if len(set(ratios)) < 2:
        return f'Every plan must set "targetAspectRatio" to "{ratios[0]}".'
    first, last = ratios[0], ratios[-1]
    return (
        f'List all "{first}" plans first, then all "{last}" plans. '
        "Do not interleave orientations. "
        f'Set "targetAspectRatio" of each plan to its group\'s ratio.'
    )
