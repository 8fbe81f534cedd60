from __future__ import annotations

import pytest

from conftest import completion

from mythbuster.errors import ParseError, ValidationError
from mythbuster.llm import response_parser as rp
from mythbuster.models import MiniMyth, MythVerification, TrackConcept


VERDICT = '{"verdict": "true", "explanation": "Honey found in tombs was still edible."}'


def test_fenced_block_is_parsed():
    parsed = rp.parse_response(completion(f"```json\n{VERDICT}\n```"), MythVerification)
    assert parsed.verdict == "true"
    assert parsed.citations == []
    assert parsed.mythOrigin == ""


def test_fence_inside_prose_is_parsed():
    content = f"Here is my answer:\n```JSON\n{VERDICT}\n```\nHope this helps."
    assert rp.extract_json(content)["verdict"] == "true"


def test_bare_fence_is_parsed():
    assert rp.extract_json(f"```\n{VERDICT}\n```")["verdict"] == "true"


def test_free_text_is_a_parse_error():
    with pytest.raises(ParseError):
        rp.parse_response(completion("true, probably"), MythVerification)


def test_unfenced_json_in_prose_is_rejected():
    with pytest.raises(ParseError):
        rp.extract_json(f"Sure! {VERDICT} Let me know if you need more.")


def test_scalar_json_is_rejected():
    with pytest.raises(ParseError):
        rp.extract_json("true")


def test_object_content_is_used_directly():
    body = {"choices": [{"message": {"content": {"verdict": "false", "explanation": "No."}}}]}
    assert rp.parse_response(body, MythVerification).verdict == "false"


def test_content_parts_are_joined():
    body = {
        "choices": [
            {
                "message": {
                    "content": [
                        {"type": "text", "text": '{"verdict": "inconclusive", '},
                        {"type": "text", "text": '"explanation": "Evidence is mixed."}'},
                    ]
                }
            }
        ]
    }
    assert rp.parse_response(body, MythVerification).verdict == "inconclusive"


def test_missing_content_is_a_parse_error():
    with pytest.raises(ParseError):
        rp.message_content({"choices": []})
    with pytest.raises(ParseError):
        rp.message_content("not a dict")


@pytest.mark.parametrize("raw,expected", [(True, "true"), (False, "false"), (" FALSE ", "false"), ("Inconclusive", "inconclusive")])
def test_verdict_is_normalized(raw, expected):
    parsed = rp.validate_payload(MythVerification, {"verdict": raw, "explanation": "x"})
    assert parsed.verdict == expected


def test_unknown_verdict_fails_with_payload():
    payload = {"verdict": "mostly true", "explanation": "x"}
    with pytest.raises(ValidationError) as info:
        rp.validate_payload(MythVerification, payload)
    assert info.value.payload == payload
    assert "verdict" in info.value.reason


def test_blank_explanation_fails():
    with pytest.raises(ValidationError):
        rp.validate_payload(MythVerification, {"verdict": "true", "explanation": "   "})


def test_null_optional_fields_become_empty():
    parsed = rp.validate_payload(
        MythVerification,
        {"verdict": "false", "explanation": "x", "mythOrigin": None, "citations": None},
    )
    assert parsed.mythOrigin == ""
    assert parsed.citations == []


def _concept(**overrides):
    concept = {
        "id": "space-myths",
        "title": "Space Myths",
        "description": "What astronauts really see.",
        "category": "Space",
        "difficulty": "medium",
        "totalMyths": 4,
    }
    concept.update(overrides)
    return concept


def test_lenient_batch_drops_invalid_entries():
    payload = [_concept(), _concept(id="bad", difficulty="extreme"), _concept(id="health", icon=None)]
    concepts = rp.validate_batch(TrackConcept, payload)
    assert [c.id for c in concepts] == ["space-myths", "health"]
    assert concepts[1].icon == "BookOpen"


def test_lenient_batch_fails_when_nothing_is_valid():
    with pytest.raises(ValidationError):
        rp.validate_batch(TrackConcept, [_concept(totalMyths=0), {"id": "x"}])


def test_batch_wrapped_in_object_is_accepted():
    concepts = rp.parse_response(completion({"tracks": [_concept()]}), TrackConcept, list_mode="lenient")
    assert len(concepts) == 1


def test_exact_batch_requires_count():
    myths = [{"statement": f"Myth {i}", "verdict": False, "explanation": "No."} for i in range(4)]
    with pytest.raises(ValidationError):
        rp.validate_batch(MiniMyth, myths, exact_count=5)
    myths.append({"statement": "Myth 4", "verdict": True, "explanation": "Yes."})
    assert len(rp.validate_batch(MiniMyth, myths, exact_count=5)) == 5
