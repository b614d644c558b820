"""Server-side gallery rendering: plans first, then concurrent sketches.

The browser page normally fetches each card's sketch on its own.  This
module does the same fan-out on the server, for clients that want the whole
gallery (plans plus sketches) in one response, and for export.

Sketches start only after the full plan list is known.  Each sketch runs
independently; a sketch result is applied to its card only while the
generation's :class:`~shotguide.core.liveness.LivenessToken` is alive.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from .export import SheetEntry
from .liveness import LivenessToken, guarded
from .models import PlanBatch, PlanRecord, UserInput
from .pipeline import PlanGenerator
from .sketch import SketchRequestDispatcher

logger = logging.getLogger(__name__)


@dataclass
class GalleryCard:
    """One plan merged with its sketch (``None`` when unavailable)."""

    index: int
    plan: PlanRecord
    image: str | None = None

    def to_dict(self) -> dict:
        return {"index": self.index, "plan": self.plan.to_wire(), "image": self.image}

    def to_sheet_entry(self) -> SheetEntry:
        return SheetEntry(
            title=self.plan.title, aspect_ratio=self.plan.target_aspect_ratio, image=self.image
        )


@dataclass
class GalleryResult:
    """A rendered gallery.

    ``stale`` is set when the generation was superseded before it finished;
    the cards must then not be displayed.
    """

    cards: list[GalleryCard] = field(default_factory=list)
    batch: PlanBatch = field(default_factory=PlanBatch)
    stale: bool = False


async def render_gallery(
    generator: PlanGenerator,
    dispatcher: SketchRequestDispatcher,
    user_input: UserInput,
    token: LivenessToken,
) -> GalleryResult:
    """Generate plans, then fetch every sketch concurrently.

    Args:
        generator: Plan generator.
        dispatcher: Sketch dispatcher.
        user_input: The form submission.
        token: Liveness token of this generation.

    Returns:
        The gallery.  Sketch failures leave ``image`` as ``None`` on the
        affected card only.

    Raises:
        Any error of :meth:`PlanGenerator.generate`.
    """
    batch = await generator.generate(user_input)
    if not token.alive:
        logger.info(f"Generation {token.generation_id} superseded before sketching")
        return GalleryResult(batch=batch, stale=True)

    cards = [GalleryCard(index=i, plan=plan) for i, plan in enumerate(batch.plans)]

    async def _fill(card: GalleryCard) -> None:
        applied, image = await guarded(
            token, dispatcher.dispatch(card.plan.image_prompt, card.plan.target_aspect_ratio)
        )
        if applied:
            card.image = image

    await asyncio.gather(*(_fill(card) for card in cards))

    missing = sum(1 for card in cards if card.image is None)
    if missing:
        logger.info(f"{missing} of {len(cards)} sketch(es) unavailable")
    return GalleryResult(cards=cards, batch=batch, stale=not token.alive)
