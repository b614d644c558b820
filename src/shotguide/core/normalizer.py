"""Normalization of untrusted text-backend output into plan records.

:class:`ResponseNormalizer` is the defensive half of plan generation.  It
takes whatever text the backend produced, repairs common corruptions with
:mod:`shotguide.core.json_repair`, parses the result and validates every
record into a :class:`~shotguide.core.models.PlanRecord`.

Outcomes
--------
- **Parse failure** raises :class:`MalformedResponseError` carrying the raw
  and the repaired text.  An unparseable response is never turned into an
  empty result, because that would hide a contract violation.
- **Zero plans** is a valid, distinct outcome: an empty list.
- **Invalid record** handling follows the configured policy:

  ``"drop"``
      The record is discarded, counted in ``dropped`` and logged.  The
      caller sees the shortfall as a warning on the batch.
  ``"fail"``
      :class:`PlanValidationError` is raised for the first invalid record.

  Missing fields are never filled with placeholders.

Aspect ratios are coerced, never rejected: the literal ``"16:9"`` stays and
anything else becomes ``"9:16"``.  Record order is preserved exactly as the
backend returned it; :func:`check_orientation_order` only reports when that
order departs from the requested grouping.
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import ValidationError

from .errors import MalformedResponseError, PlanValidationError
from .json_repair import repair_json
from .models import PLAN_FIELD_NAMES, PlanRecord

logger = logging.getLogger(__name__)

InvalidPlanPolicy = Literal["drop", "fail"]


@dataclass
class NormalizedPlans:
    """Validated records plus bookkeeping from one normalization pass."""

    plans: list[PlanRecord] = field(default_factory=list)
    dropped: int = 0
    warnings: list[str] = field(default_factory=list)


def missing_fields(record: Any) -> list[str]:
    """List required plan fields that are absent or blank in *record*.

    ``targetAspectRatio`` is never reported: it is always coerced.
    """
    if not isinstance(record, dict):
        return [name for name in PLAN_FIELD_NAMES if name != "targetAspectRatio"]

    missing = []
    for name in PLAN_FIELD_NAMES:
        if name == "targetAspectRatio":
            continue
        value = record.get(name)
        if value is None or isinstance(value, bool):
            missing.append(name)
        elif isinstance(value, str) and not value.strip():
            missing.append(name)
        elif not isinstance(value, (str, int, float)):
            missing.append(name)
    return missing


def check_orientation_order(plans: list[PlanRecord], expected: tuple[str, ...]) -> list[str]:
    """Compare the returned ratio sequence with the requested one.

    The backend is only asked, never forced, to group plans by orientation.
    This reports a departure without reordering anything.

    Args:
        plans: Validated plans in backend order.
        expected: Ratio sequence that was requested.

    Returns:
        Warning strings; empty when the order conforms.
    """
    actual = tuple(plan.target_aspect_ratio for plan in plans)
    if actual == expected:
        return []

    warnings = []
    if Counter(actual) != Counter(expected):
        warnings.append(
            f"Requested orientations {_count_summary(expected)} "
            f"but received {_count_summary(actual)}"
        )
    if _group_count(actual) > len(set(actual)):
        warnings.append("Plans are not grouped by orientation as requested")
    elif actual and expected and actual[0] != expected[0]:
        warnings.append(f"Expected {expected[0]} plans first but received {actual[0]} first")
    return warnings


def _count_summary(ratios: tuple[str, ...]) -> str:
    counts = Counter(ratios)
    return ", ".join(f"{count}x {ratio}" for ratio, count in counts.items()) or "nothing"


def _group_count(ratios: tuple[str, ...]) -> int:
    return sum(1 for i, ratio in enumerate(ratios) if i == 0 or ratios[i - 1] != ratio)


class ResponseNormalizer:
    """Turns raw backend text into an ordered list of plan records.

    Args:
        policy: What to do with a record missing required fields.
    """

    def __init__(self, policy: InvalidPlanPolicy = "drop") -> None:
        self.policy = policy

    def parse_payload(self, raw_text: str) -> Any:
        """Repair and parse *raw_text*.

        Raises:
            MalformedResponseError: If the repaired text is not valid JSON.
        """
        cleaned = repair_json(raw_text)
        try:
            return json.loads(cleaned)
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse backend response after repair: {e}")
            logger.debug("Raw response: %r", raw_text[:2000])
            raise MalformedResponseError(
                f"Backend response is not valid JSON: {e.msg} (line {e.lineno}, column {e.colno})",
                raw_text=raw_text,
                cleaned_text=cleaned,
            ) from e

    def normalize(self, raw_text: str) -> NormalizedPlans:
        """Parse *raw_text* and validate every plan record in order.

        Args:
            raw_text: Text exactly as returned by the backend.

        Returns:
            Validated plans with drop count and warnings.

        Raises:
            MalformedResponseError: If the text cannot be parsed, or the
                ``plans`` value is not a list.
            PlanValidationError: If a record is invalid and the policy is
                ``"fail"``.
        """
        payload = self.parse_payload(raw_text)
        result = NormalizedPlans()

        if isinstance(payload, list):
            records = payload
        elif isinstance(payload, dict):
            if "plans" not in payload:
                logger.warning("Backend response has no 'plans' key, treating as zero plans")
                result.warnings.append("The model returned no plans")
                return result
            records = payload["plans"]
        else:
            raise MalformedResponseError(
                f"Expected a JSON object, got {type(payload).__name__}",
                raw_text=raw_text,
                cleaned_text=repair_json(raw_text),
            )

        if records is None:
            records = []
        if not isinstance(records, list):
            raise MalformedResponseError(
                f"'plans' must be a list, got {type(records).__name__}",
                raw_text=raw_text,
                cleaned_text=repair_json(raw_text),
            )

        for index, record in enumerate(records):
            plan = self._validate_record(index, record)
            if plan is None:
                result.dropped += 1
                continue
            result.plans.append(plan)

        if result.dropped:
            result.warnings.append(
                f"{result.dropped} plan(s) were dropped because required fields were missing"
            )
        logger.info(
            "Normalized %d plan(s) from backend response (%d dropped)",
            len(result.plans),
            result.dropped,
        )
        return result

    def _validate_record(self, index: int, record: Any) -> PlanRecord | None:
        missing = missing_fields(record)
        if not missing:
            try:
                return PlanRecord.model_validate(record)
            except ValidationError as e:
                missing = sorted({str(err["loc"][0]) for err in e.errors() if err["loc"]})

        if self.policy == "fail":
            raise PlanValidationError(index, missing)
        logger.warning(f"Dropping plan #{index + 1}: missing {', '.join(missing)}")
        return None
