"""Tests for shotguide.core.normalizer: parsing and validating backend output.

Tests cover:
- Round trip of N records with order and field equality.
- Repair of fenced, commented and trailing-comma responses.
- Distinct outcomes: malformed text, zero plans, invalid records.
- Both invalid-record policies.
- Orientation-order conformance warnings.
"""

from __future__ import annotations

import json

import pytest

from shotguide.core.errors import MalformedResponseError, PlanValidationError
from shotguide.core.models import PlanRecord
from shotguide.core.normalizer import (
    ResponseNormalizer,
    check_orientation_order,
    missing_fields,
)


@pytest.fixture
def normalizer() -> ResponseNormalizer:
    return ResponseNormalizer()


def _payload(plans: list[dict]) -> str:
    return json.dumps({"plans": plans}, ensure_ascii=False)


class TestRoundTrip:
    """Valid responses come back unchanged and in order."""

    @pytest.mark.parametrize("count", [1, 3, 10])
    def test_records_preserved_in_order(self, normalizer, make_plan, count):
        plans = [make_plan(i, "16:9" if i % 2 else "9:16") for i in range(count)]
        result = normalizer.normalize(_payload(plans))
        assert [p.to_wire() for p in result.plans] == plans
        assert result.dropped == 0
        assert result.warnings == []

    def test_bare_list_accepted(self, normalizer, make_plan):
        result = normalizer.normalize(json.dumps([make_plan(1)]))
        assert len(result.plans) == 1

    def test_bare_list_of_several_records(self, normalizer, make_plan):
        plans = [make_plan(1), make_plan(2), make_plan(3, "16:9")]
        text = f"```json\n{json.dumps(plans, ensure_ascii=False)}\n```"
        result = normalizer.normalize(text)
        assert [p.to_wire() for p in result.plans] == plans
        assert result.warnings == []

    def test_ratio_always_supported(self, normalizer, make_plan):
        """Whatever the backend says, the ratio ends up as one of the two literals."""
        plans = [
            make_plan(1, "16:9"),
            make_plan(2, "4:3"),
            make_plan(3, "landscape"),
            make_plan(4, ""),
        ]
        ratios = [p.target_aspect_ratio for p in normalizer.normalize(_payload(plans)).plans]
        assert ratios == ["16:9", "9:16", "9:16", "9:16"]


class TestRepair:
    """Corrupted but recoverable responses."""

    def test_fenced_trailing_comma_single_plan(self, normalizer, make_plan):
        body = json.dumps(make_plan(1, "16:9"), ensure_ascii=False)
        text = f'```json\n{{"plans":[{body},]}}\n```'
        result = normalizer.normalize(text)
        assert len(result.plans) == 1
        assert result.plans[0].target_aspect_ratio == "16:9"

    def test_comment_lines_tolerated(self, normalizer, make_plan):
        body = json.dumps(make_plan(1), ensure_ascii=False)
        text = f'{{\n// the plans\n"plans": [\n# first\n{body}\n]\n}}'
        assert len(normalizer.normalize(text).plans) == 1


class TestOutcomes:
    """Malformed, empty and invalid results are kept distinct."""

    def test_unparseable_text_raises(self, normalizer):
        with pytest.raises(MalformedResponseError) as exc_info:
            normalizer.normalize('{"plans": [ {"title": ')
        assert exc_info.value.raw_text == '{"plans": [ {"title": '
        assert exc_info.value.cleaned_text

    def test_prose_only_raises(self, normalizer):
        with pytest.raises(MalformedResponseError):
            normalizer.normalize("I cannot help with that.")

    def test_empty_plans_is_valid(self, normalizer):
        result = normalizer.normalize('{"plans": []}')
        assert result.plans == [] and result.dropped == 0

    def test_missing_plans_key_is_empty_with_warning(self, normalizer):
        result = normalizer.normalize('{"notes": "nothing"}')
        assert result.plans == []
        assert result.warnings == ["The model returned no plans"]

    def test_non_list_plans_raises(self, normalizer):
        with pytest.raises(MalformedResponseError, match="must be a list"):
            normalizer.normalize('{"plans": {"title": "A"}}')

    def test_scalar_payload_raises(self, normalizer):
        with pytest.raises(MalformedResponseError):
            normalizer.normalize("42")


class TestInvalidRecordPolicy:
    """Records missing required fields."""

    def test_drop_policy_skips_and_counts(self, make_plan):
        broken = make_plan(2)
        del broken["modelDirecting"]
        plans = [make_plan(1), broken, make_plan(3, poseEyes="")]
        result = ResponseNormalizer("drop").normalize(_payload(plans))
        assert [p.title for p in result.plans] == ["Plan 1"]
        assert result.dropped == 2
        assert "2 plan(s) were dropped" in result.warnings[0]

    def test_dropped_records_are_not_filled(self, make_plan):
        broken = make_plan(1)
        del broken["iso"]
        result = ResponseNormalizer("drop").normalize(_payload([broken]))
        assert result.plans == []

    def test_fail_policy_raises(self, make_plan):
        broken = make_plan(2)
        del broken["aperture"]
        with pytest.raises(PlanValidationError) as exc_info:
            ResponseNormalizer("fail").normalize(_payload([make_plan(1), broken]))
        assert exc_info.value.index == 1
        assert exc_info.value.missing == ["aperture"]
        assert "Plan #2" in str(exc_info.value)

    def test_non_object_record_is_invalid(self):
        result = ResponseNormalizer("drop").normalize('{"plans": ["just a string"]}')
        assert result.dropped == 1


class TestMissingFields:
    def test_complete_record(self, make_plan):
        assert missing_fields(make_plan()) == []

    def test_ratio_never_reported(self, make_plan):
        record = make_plan()
        del record["targetAspectRatio"]
        assert missing_fields(record) == []

    def test_blank_and_null_reported(self, make_plan):
        assert missing_fields(make_plan(title=" ", angle=None)) == ["title", "angle"]


class TestOrientationOrder:
    """check_orientation_order() reports but never reorders."""

    def _plans(self, make_plan, ratios):
        return [PlanRecord.model_validate(make_plan(i, r)) for i, r in enumerate(ratios)]

    def test_conforming_order(self, make_plan):
        plans = self._plans(make_plan, ["9:16", "9:16", "16:9"])
        assert check_orientation_order(plans, ("9:16", "9:16", "16:9")) == []

    def test_interleaved_order_warns(self, make_plan):
        plans = self._plans(make_plan, ["9:16", "16:9", "9:16"])
        warnings = check_orientation_order(plans, ("9:16", "9:16", "16:9"))
        assert warnings == ["Plans are not grouped by orientation as requested"]
        assert [p.target_aspect_ratio for p in plans] == ["9:16", "16:9", "9:16"]

    def test_wrong_group_first_warns(self, make_plan):
        plans = self._plans(make_plan, ["16:9", "9:16", "9:16"])
        warnings = check_orientation_order(plans, ("9:16", "9:16", "16:9"))
        assert warnings == ["Expected 9:16 plans first but received 16:9 first"]

    def test_count_mismatch_warns(self, make_plan):
        plans = self._plans(make_plan, ["9:16", "9:16", "9:16"])
        warnings = check_orientation_order(plans, ("9:16", "9:16", "16:9"))
        assert warnings[0].startswith("Requested orientations 2x 9:16, 1x 16:9")
