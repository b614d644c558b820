"""Plan generation: build, call once, normalize.

:class:`PlanGenerator` wires the three plan-side pieces together:

1. :class:`~shotguide.core.plan_request.PlanRequestBuilder` builds the
   request (or reports that nothing was requested).
2. A :class:`~shotguide.core.backends.TextBackendClient` performs the single
   backend call.
3. :class:`~shotguide.core.normalizer.ResponseNormalizer` repairs and
   validates the response.

Any failure of the text flow propagates to the caller as one error; there
are no partial results.

Usage
-----
::

    async with httpx.AsyncClient(timeout=config.http_timeout) as client:
        backend = backend_registry.instantiate(config.text_backend, config, client)
        generator = PlanGenerator(config, backend)
        batch = await generator.generate(user_input)
"""

from __future__ import annotations

import logging

from .backends import TextBackendClient
from .config import ShotguideConfig
from .models import PlanBatch, UserInput
from .normalizer import ResponseNormalizer, check_orientation_order
from .plan_request import PlanRequestBuilder

logger = logging.getLogger(__name__)


class PlanGenerator:
    """Generates validated plan batches from user input.

    Args:
        config: Application configuration.
        backend: Text-backend variant that performs the HTTP call.
        builder: Request builder (defaults to one built from *config*).
        normalizer: Response normalizer (defaults to the configured policy).
    """

    def __init__(
        self,
        config: ShotguideConfig,
        backend: TextBackendClient,
        builder: PlanRequestBuilder | None = None,
        normalizer: ResponseNormalizer | None = None,
    ) -> None:
        self.config = config
        self.backend = backend
        self.builder = builder or PlanRequestBuilder(config)
        self.normalizer = normalizer or ResponseNormalizer(config.invalid_plan_policy)

    async def generate(self, user_input: UserInput) -> PlanBatch:
        """Generate the plans requested by *user_input*.

        A request for zero plans returns an empty batch without contacting
        the backend.

        Raises:
            ValueError: If the input is invalid.
            ConfigurationError: If the API key is missing.
            BackendError: On transport or HTTP failure.
            EmptyResponseError: If the backend returned no text.
            MalformedResponseError: If the response cannot be parsed.
            PlanValidationError: If a record is invalid under the strict policy.
        """
        request = self.builder.build(user_input)
        if request is None:
            return PlanBatch.empty()

        self.config.require_api_key()

        raw_text = await self.backend.complete(request)
        normalized = self.normalizer.normalize(raw_text)

        batch = PlanBatch(
            plans=normalized.plans,
            requested=request.total,
            dropped=normalized.dropped,
            warnings=list(normalized.warnings),
        )

        if len(batch.plans) != request.total:
            batch.warnings.append(f"Requested {request.total} plan(s), received {len(batch.plans)}")

        order_warnings = check_orientation_order(batch.plans, request.expected_ratios)
        for warning in order_warnings:
            logger.warning(warning)
        batch.warnings.extend(order_warnings)

        logger.info(
            "Generated %d/%d plan(s) with %d warning(s)",
            len(batch.plans),
            request.total,
            len(batch.warnings),
        )
        return batch
