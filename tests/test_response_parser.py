"""Tests for decoding model output."""

import json

from conftest import candidate_json, entries_text

from captrack.attribution.services.response_parser import (
    decode_candidates,
    decode_classification,
    extract_json_block,
    is_valid_candidates_response,
    looks_like_json,
    strip_reasoning,
)
from captrack.core.models import ProjectPhase, WorkType


class TestStripReasoning:
    def test_strip_reasoning__removes_think_blocks_and_control_tokens(self):
        text = "<think>\nweighing options\n</think>\n<|im_start|>assistant\n[]<|im_end|>"

        assert strip_reasoning(text) == "assistant\n[]"

    def test_strip_reasoning__removes_multiple_think_blocks(self):
        assert strip_reasoning("<think>a</think>one <think>b</think>two") == "one two"

    def test_looks_like_json__detects_payloads(self):
        assert looks_like_json('Here you go: [{"a": 1}]')
        assert looks_like_json('{"workType": "coding"}')
        assert not looks_like_json("About three hours of work.")


class TestExtractJsonBlock:
    def test_extract_json_block__prefers_fenced_block(self):
        text = 'Notes [not json]\n```json\n[{"a": 1}]\n```'

        assert extract_json_block(text) == ('[{"a": 1}]', True)

    def test_extract_json_block__falls_back_to_bare_array(self):
        payload, ok = extract_json_block('Entries: [{"a": 1}] done')

        assert ok is True
        assert json.loads(payload) == [{"a": 1}]

    def test_extract_json_block__object_first_when_not_expecting_array(self):
        payload, ok = extract_json_block('{"workType": "coding", "confidence": 0.9}', expect_array=False)

        assert ok is True
        assert json.loads(payload)["workType"] == "coding"

    def test_extract_json_block__reports_missing_payload(self):
        assert extract_json_block("Nothing structured here") == ("", False)


class TestDecodeCandidates:
    def test_decode_candidates__parses_camel_case_fields(self):
        text = entries_text(candidate_json(enhancementSuggested=True, enhancementReason="New module"))

        candidates, ok = decode_candidates(text)

        assert ok is True
        assert len(candidates) == 1
        candidate = candidates[0]
        assert candidate.project_id == "proj-acme"
        assert candidate.hours_estimate == 3.0
        assert candidate.phase_suggestion == ProjectPhase.APPLICATION_DEVELOPMENT
        assert candidate.enhancement_suggested is True
        assert candidate.enhancement_reason == "New module"

    def test_decode_candidates__accepts_null_project_id(self):
        candidates, ok = decode_candidates(entries_text(candidate_json(projectId=None, projectName="scratch")))

        assert ok is True
        assert candidates[0].project_id is None

    def test_decode_candidates__empty_array_is_valid(self):
        assert decode_candidates("<think>quiet day</think>\n[]") == ([], True)

    def test_decode_candidates__rejects_truncated_json(self):
        assert decode_candidates('```json\n[{"projectId": "proj-acme", \n```') == ([], False)

    def test_decode_candidates__rejects_object_payload(self):
        text = "```json\n" + json.dumps(candidate_json()) + "\n```"

        assert decode_candidates(text) == ([], False)

    def test_decode_candidates__rejects_missing_fields(self):
        """One bad element fails the whole response."""
        bad = candidate_json()
        del bad["hoursEstimate"]

        assert decode_candidates(entries_text(candidate_json(), bad)) == ([], False)

    def test_decode_candidates__rejects_out_of_range_values(self):
        assert decode_candidates(entries_text(candidate_json(hoursEstimate=30))) == ([], False)
        assert decode_candidates(entries_text(candidate_json(confidence=1.5))) == ([], False)

    def test_decode_candidates__rejects_unknown_phase(self):
        assert decode_candidates(entries_text(candidate_json(phaseSuggestion="maintenance"))) == ([], False)

    def test_is_valid_candidates_response__mirrors_decode(self):
        assert is_valid_candidates_response(entries_text(candidate_json())) is True
        assert is_valid_candidates_response("I could not decide.") is False


class TestDecodeClassification:
    def test_decode_classification__parses_object(self):
        result, ok = decode_classification('<think>hmm</think>{"workType": "testing", "confidence": 0.9}')

        assert ok is True
        assert result.work_type == WorkType.TESTING
        assert result.confidence == 0.9

    def test_decode_classification__rejects_array(self):
        assert decode_classification('[{"workType": "testing", "confidence": 0.9}]') == (None, False)

    def test_decode_classification__rejects_unknown_category(self):
        assert decode_classification('{"workType": "meetings", "confidence": 0.9}') == (None, False)
