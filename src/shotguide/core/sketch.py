"""Per-plan sketch generation with failure isolation.

:class:`SketchRequestDispatcher` asks the image backend for one monochrome
line-drawing sketch per plan and returns it as a ``data:`` URI.  A sketch is
illustrative: when anything goes wrong (transport error, HTTP error, a
response without an image) the dispatcher logs it and returns ``None``, and
the card shows an "image unavailable" placeholder instead.  One failed
sketch never affects its siblings or the plans themselves.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import Any

import httpx

from .config import ShotguideConfig
from .errors import ShotguideError
from .gemini_rest import iter_parts, post_generate_content
from .models import PlanRecord, normalize_aspect_ratio

logger = logging.getLogger(__name__)

SKETCH_STYLE = (
    "Style: minimalist black and white line drawing sketch. Monochrome ink lines only, "
    "no color, no shading fills, no text. Clear, readable composition showing the "
    "subject's pose and placement in the frame."
)

DEFAULT_IMAGE_MIME = "image/png"


def build_sketch_prompt(prompt: str, aspect_ratio: str) -> str:
    """Append the fixed sketch style and frame ratio to *prompt*."""
    orientation = "vertical" if aspect_ratio == "9:16" else "horizontal"
    return f"{prompt.strip()}\n\n{SKETCH_STYLE}\nFrame: {aspect_ratio} {orientation} composition."


def extract_inline_image(response: dict[str, Any]) -> str | None:
    """Find the first inline image in *response* and return it as a data URI.

    Both field-naming conventions are recognised: ``inlineData`` /
    ``mimeType`` and ``inline_data`` / ``mime_type``.  Every candidate is
    scanned in order.

    Returns:
        ``data:<mime>;base64,<payload>``, or ``None`` when no part carries
        image data.
    """
    for part in iter_parts(response):
        inline = part.get("inlineData") or part.get("inline_data")
        if not isinstance(inline, dict):
            continue
        data = inline.get("data")
        if not data:
            continue
        mime = inline.get("mimeType") or inline.get("mime_type") or DEFAULT_IMAGE_MIME
        return f"data:{mime};base64,{data}"
    return None


class SketchRequestDispatcher:
    """Issues independent sketch requests to the image backend.

    Args:
        config: Configuration (image model, base URL, key).
        client: Shared HTTP client owned by the caller.
    """

    def __init__(self, config: ShotguideConfig, client: httpx.AsyncClient) -> None:
        self.config = config
        self.client = client

    def build_body(self, prompt: str, aspect_ratio: str) -> dict[str, Any]:
        ratio = normalize_aspect_ratio(aspect_ratio)
        return {
            "contents": [{"role": "user", "parts": [{"text": build_sketch_prompt(prompt, ratio)}]}],
            "generationConfig": {
                "responseModalities": ["TEXT", "IMAGE"],
                "imageConfig": {"aspectRatio": ratio},
            },
        }

    async def dispatch(self, prompt: str, aspect_ratio: str) -> str | None:
        """Request one sketch.

        The aspect ratio is normalized again here because this method can be
        called directly, bypassing the response normalizer.

        Args:
            prompt: Image prompt of the plan.
            aspect_ratio: Target ratio; anything but ``"16:9"`` means ``"9:16"``.

        Returns:
            A data URI, or ``None`` when the backend failed or produced no image.
        """
        if not prompt or not prompt.strip():
            logger.warning("Skipping sketch request with an empty prompt")
            return None

        body = self.build_body(prompt, aspect_ratio)
        try:
            response = await post_generate_content(
                self.client, self.config, self.config.image_model, body
            )
        except ShotguideError as e:
            logger.error(f"Error generating sketch: {e}")
            return None
        except Exception:
            logger.exception("Unexpected error generating sketch")
            return None

        image = extract_inline_image(response)
        if image is None:
            logger.info("Image backend returned no inline image")
        return image

    async def dispatch_all(self, plans: Iterable[PlanRecord]) -> list[str | None]:
        """Request a sketch for every plan concurrently.

        Returns:
            One result per plan, aligned by index.
        """
        return list(
            await asyncio.gather(
                *(self.dispatch(plan.image_prompt, plan.target_aspect_ratio) for plan in plans)
            )
        )
