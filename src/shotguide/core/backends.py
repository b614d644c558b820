"""Text-backend variants and their registry.

Different deployments reach the plan model in mutually exclusive ways.  Each
way is a :class:`TextBackendClient` subclass that knows how to build the
request body for a :class:`~shotguide.core.plan_request.PlanRequest` and how
to pull the response text back out; the HTTP exchange itself is shared.

Available Variants
------------------
- **schema** (:class:`SchemaTextBackend`): the contract travels as a
  first-class ``responseSchema`` alongside JSON response mode.  Preferred.
- **instructed** (:class:`InstructedTextBackend`): the contract is folded
  into the prompt as plain-text instructions, for gateways that reject
  response schemas.

Both produce the same semantic constraints, so the rest of the pipeline does
not care which one is active.

Usage Example
-------------
    >>> from shotguide.core.backends import backend_registry
    >>> backend = backend_registry.instantiate(config.text_backend, config, http_client)
    >>> text = await backend.complete(plan_request)

Adding a Variant
----------------
    >>> class MyBackend(TextBackendClient):
    ...     name = "my-gateway"
    ...     description = "..."
    ...     def build_body(self, request): ...
    >>> backend_registry.register(MyBackend)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from .config import ShotguideConfig
from .errors import EmptyResponseError
from .gemini_rest import extract_text, post_generate_content
from .plan_request import PlanRequest, describe_schema

logger = logging.getLogger(__name__)


class TextBackendClient(ABC):
    """Abstract base class for text-backend variants.

    Attributes
    ----------
    name : str
        Registry key, matched against ``config.text_backend``
    description : str
        Brief description of the variant
    config : ShotguideConfig
        Configuration (model, temperature, base URL, key)
    client : httpx.AsyncClient
        Shared HTTP client owned by the caller
    """

    name: str = "base"
    description: str = "Base class for text backends"

    def __init__(self, config: ShotguideConfig, client: httpx.AsyncClient) -> None:
        self.config = config
        self.client = client

    @abstractmethod
    def build_body(self, request: PlanRequest) -> dict[str, Any]:
        """Build the JSON request body for *request*."""

    def extract_text(self, response: dict[str, Any]) -> str:
        """Return the completion text from a decoded response."""
        return extract_text(response)

    async def complete(self, request: PlanRequest) -> str:
        """Send *request* once and return the raw completion text.

        Raises:
            ConfigurationError: If the API key is missing.
            BackendError: On transport or HTTP failure.
            EmptyResponseError: If the backend produced no text.
        """
        body = self.build_body(request)
        logger.info(f"Requesting {request.total} plan(s) from {self.config.text_model} ({self.name})")
        response = await post_generate_content(self.client, self.config, self.config.text_model, body)

        text = self.extract_text(response)
        if not text.strip():
            finish = _finish_reason(response)
            logger.error(f"Text backend returned no text (finishReason={finish})")
            raise EmptyResponseError(
                "The model returned nothing." + (f" Finish reason: {finish}." if finish else "")
            )
        logger.info(f"Text backend response received: {len(text)} chars")
        return text

    def _base_body(self, prompt: str) -> dict[str, Any]:
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": self.config.temperature},
        }

    def get_info(self) -> dict[str, Any]:
        return {"name": self.name, "description": self.description, "model": self.config.text_model}


class SchemaTextBackend(TextBackendClient):
    """Sends the contract as a first-class response schema."""

    name = "schema"
    description = "Schema-constrained JSON output (responseSchema)"

    def build_body(self, request: PlanRequest) -> dict[str, Any]:
        body = self._base_body(request.prompt)
        body["systemInstruction"] = {"parts": [{"text": request.system_instruction}]}
        body["generationConfig"]["responseMimeType"] = "application/json"
        body["generationConfig"]["responseSchema"] = request.schema
        return body


class InstructedTextBackend(TextBackendClient):
    """Folds the contract into the prompt as text instructions."""

    name = "instructed"
    description = "Prompt-instructed JSON output for backends without schema support"

    def build_body(self, request: PlanRequest) -> dict[str, Any]:
        prompt = f"{request.prompt}\n\n{describe_schema(request.schema)}"
        body = self._base_body(prompt)
        body["systemInstruction"] = {"parts": [{"text": request.system_instruction}]}
        body["generationConfig"]["responseMimeType"] = "application/json"
        return body


def _finish_reason(response: dict[str, Any]) -> str | None:
    candidates = response.get("candidates") or []
    if candidates and isinstance(candidates[0], dict):
        return candidates[0].get("finishReason")
    feedback = response.get("promptFeedback")
    if isinstance(feedback, dict):
        return feedback.get("blockReason")
    return None


class BackendRegistry:
    """Registry of text-backend variants, keyed by ``name``."""

    def __init__(self) -> None:
        self._backends: dict[str, type[TextBackendClient]] = {}

    def register(self, backend_class: type[TextBackendClient]) -> None:
        """Register a backend class, overwriting any with the same name."""
        if backend_class.name in self._backends:
            logger.warning(f"Text backend '{backend_class.name}' is already registered, overwriting")
        self._backends[backend_class.name] = backend_class
        logger.debug(f"Registered text backend: {backend_class.name}")

    def instantiate(
        self, name: str, config: ShotguideConfig, client: httpx.AsyncClient
    ) -> TextBackendClient:
        """Create an instance of the backend registered as *name*.

        Raises:
            KeyError: If *name* is not registered.
        """
        if name not in self._backends:
            available = ", ".join(self.list_available())
            raise KeyError(f"Text backend '{name}' not found. Available backends: {available}")
        return self._backends[name](config=config, client=client)

    def list_available(self) -> list[str]:
        return list(self._backends.keys())


# Global backend registry instance
backend_registry = BackendRegistry()
backend_registry.register(SchemaTextBackend)
backend_registry.register(InstructedTextBackend)
