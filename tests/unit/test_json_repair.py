"""Tests for shotguide.core.json_repair: text repair stages."""

from __future__ import annotations

import json

import pytest

from shotguide.core.json_repair import (
    extract_json_payload,
    remove_trailing_commas,
    repair_json,
    strip_code_fences,
    strip_comment_lines,
)

CLEAN = '{\n  "plans": [\n    {"title": "A", "iso": "100"}\n  ]\n}'


class TestStripCodeFences:
    def test_fenced_with_language_tag(self):
        assert strip_code_fences("```json\n{\"a\": 1}\n```") == '{"a": 1}'

    def test_fenced_without_tag(self):
        assert strip_code_fences("```\n[1, 2]\n```") == "[1, 2]"

    def test_unfenced_text_unchanged(self):
        assert strip_code_fences(CLEAN) == CLEAN

    def test_idempotent(self):
        once = strip_code_fences("```json\n{\"a\": 1}\n```")
        assert strip_code_fences(once) == once

    def test_missing_closing_fence(self):
        assert strip_code_fences("```json\n{\"a\": 1}") == '{"a": 1}'


class TestExtractJsonPayload:
    def test_prose_around_object(self):
        text = 'Sure! Here are your plans:\n{"plans": []}\nEnjoy the shoot.'
        assert extract_json_payload(text) == '{"plans": []}'

    def test_no_braces_unchanged(self):
        assert extract_json_payload("nothing here") == "nothing here"

    def test_top_level_array_kept_whole(self):
        text = 'Plans below:\n[{"title": "A"}, {"title": "B"}]\nDone.'
        assert extract_json_payload(text) == '[{"title": "A"}, {"title": "B"}]'

    def test_object_containing_array_sliced_by_braces(self):
        assert extract_json_payload('ok {"plans": [1]} ok') == '{"plans": [1]}'


class TestStripCommentLines:
    @pytest.mark.parametrize(
        "comment",
        ["// plan one", "# plan one", "/* plan one */", " * continued", "*/"],
    )
    def test_comment_lines_removed(self, comment):
        text = f'{{\n{comment}\n"a": 1\n}}'
        assert json.loads(strip_comment_lines(text)) == {"a": 1}

    def test_blank_lines_removed(self):
        assert strip_comment_lines("{\n\n  \n}") == "{\n}"

    def test_urls_inside_values_kept(self):
        text = '{\n"a": "https://example.com"\n}'
        assert strip_comment_lines(text) == text


class TestRemoveTrailingCommas:
    def test_object_and_array(self):
        assert remove_trailing_commas('{"a": [1, 2, ], "b": 3, }') == '{"a": [1, 2], "b": 3}'

    def test_across_newlines(self):
        assert json.loads(remove_trailing_commas('{"a": 1,\n\n}')) == {"a": 1}


class TestRepairJson:
    def test_clean_input_is_idempotent(self):
        """Repairing valid JSON changes nothing semantically, and twice equals once."""
        once = repair_json(CLEAN)
        assert json.loads(once) == json.loads(CLEAN)
        assert repair_json(once) == once

    def test_fenced_trailing_comma_scenario(self):
        """Fence plus trailing comma parses to the same single plan."""
        text = '```json\n{"plans":[{"title":"A","targetAspectRatio":"16:9"},]}\n```'
        assert json.loads(repair_json(text)) == {
            "plans": [{"title": "A", "targetAspectRatio": "16:9"}]
        }

    def test_everything_at_once(self):
        text = (
            "Here you go:\n```json\n{\n  // first plan\n  \"plans\": [\n"
            "    {\"title\": \"A\"},\n    # second\n    {\"title\": \"B\"},\n  ],\n}\n```"
        )
        assert json.loads(repair_json(text)) == {"plans": [{"title": "A"}, {"title": "B"}]}

    def test_fenced_array(self):
        text = '```json\n[\n  {"title": "A"},\n  {"title": "B"},\n]\n```'
        assert json.loads(repair_json(text)) == [{"title": "A"}, {"title": "B"}]

    def test_array_surrounded_by_prose(self):
        text = 'Here are the plans:\n[{"title": "A"}]\nHappy shooting!'
        assert json.loads(repair_json(text)) == [{"title": "A"}]
