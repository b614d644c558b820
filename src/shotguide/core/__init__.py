"""Core functionality for shooting-plan generation.

This package holds everything that does not depend on the web layer:

- **Configuration** (config.py): pydantic-settings, ``SHOTGUIDE_`` prefix
- **Data model** (models.py): ``UserInput``, ``PlanRecord``, ``PlanBatch``
- **Plan request** (plan_request.py): prompt, system instruction and
  response schema for one generation
- **Text backends** (backends.py): schema / instructed variants and their
  registry
- **Normalization** (json_repair.py, normalizer.py): repair, parse and
  validate the model's answer
- **Sketches** (sketch.py): one independent image request per plan
- **Liveness** (liveness.py): discards late results of superseded
  generations
- **Orchestration** (pipeline.py, gallery.py) and **export** (export.py)

Usage Example
-------------
    import httpx
    from shotguide.core import PlanGenerator, UserInput, backend_registry, config

    async with httpx.AsyncClient(timeout=config.http_timeout) as client:
        backend = backend_registry.instantiate(config.text_backend, config, client)
        batch = await PlanGenerator(config, backend).generate(
            UserInput("a dancer", "old town", "golden hour", "film", 2, 1)
        )
"""

from shotguide.core.backends import TextBackendClient, backend_registry
from shotguide.core.config import ShotguideConfig, config
from shotguide.core.gallery import GalleryCard, GalleryResult, render_gallery
from shotguide.core.liveness import GenerationTracker, LivenessToken
from shotguide.core.models import PlanBatch, PlanRecord, UserInput
from shotguide.core.normalizer import ResponseNormalizer
from shotguide.core.pipeline import PlanGenerator
from shotguide.core.plan_request import PlanRequest, PlanRequestBuilder
from shotguide.core.sketch import SketchRequestDispatcher

__all__ = [
    "GalleryCard",
    "GalleryResult",
    "GenerationTracker",
    "LivenessToken",
    "PlanBatch",
    "PlanGenerator",
    "PlanRecord",
    "PlanRequest",
    "PlanRequestBuilder",
    "ResponseNormalizer",
    "ShotguideConfig",
    "SketchRequestDispatcher",
    "TextBackendClient",
    "UserInput",
    "backend_registry",
    "config",
    "render_gallery",
]
