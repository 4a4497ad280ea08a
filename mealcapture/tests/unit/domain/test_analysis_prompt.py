"""Unit tests for generative reply parsing."""

import pytest

from mealcapture.domain.recognition.analysis_prompt import (
    ANALYSIS_PROMPT,
    ParseError,
    extract_json_object,
    parse_analysis,
)

VALID = (
    '{"items":[{"name":"Rice","quantity":"1 cup","calories":200,"protein":4,"carbs":45,"fats":0.5},'
    '{"name":"Dal","quantity":150,"calories":170,"protein":12,"carbs":30,"fats":1}],'
    '"total":{"calories":380,"protein":16,"carbs":75,"fats":1.5},'
    '"summary":"Rice with lentils."}'
)


def test_prompt_requests_json_schema() -> None:
    assert '"items"' in ANALYSIS_PROMPT
    assert '"total"' in ANALYSIS_PROMPT


def test_parse_valid_reply() -> None:
    outcome = parse_analysis(VALID)
    assert [item.name for item in outcome.items] == ["Rice", "Dal"]
    assert outcome.items[1].quantity == "150"
    assert outcome.total.calories == 380
    assert outcome.summary == "Rice with lentils."


def test_json_embedded_in_prose() -> None:
    outcome = parse_analysis(f"Here is the analysis:\n```json\n{VALID}\n```\nEnjoy!")
    assert len(outcome.items) == 2


def test_summary_falls_back_to_prose() -> None:
    reply = (
        'Looks like a light lunch. {"items":[{"name":"Salad","quantity":"1 bowl","calories":50,'
        '"protein":2,"carbs":8,"fats":1}],"total":{"calories":50,"protein":2,"carbs":8,"fats":1}}'
    )
    outcome = parse_analysis(reply)
    assert outcome.summary == "Looks like a light lunch."


def test_no_json_object() -> None:
    with pytest.raises(ParseError, match="NO_JSON_OBJECT"):
        parse_analysis("I cannot see any food in this picture.")


def test_invalid_json() -> None:
    with pytest.raises(ParseError, match="INVALID_JSON"):
        parse_analysis('{"items": [ {"name": "Rice", }')


def test_schema_mismatch() -> None:
    with pytest.raises(ParseError, match="SCHEMA_MISMATCH"):
        parse_analysis('{"items":[{"name":"Rice"}],"total":{"calories":1}}')


def test_empty_items() -> None:
    with pytest.raises(ParseError, match="EMPTY_ITEMS"):
        parse_analysis(
            '{"items":[],"total":{"calories":0,"protein":0,"carbs":0,"fats":0},'
            '"summary":"No food detected"}'
        )


def test_blank_item_name_is_schema_mismatch() -> None:
    with pytest.raises(ParseError, match="SCHEMA_MISMATCH"):
        parse_analysis(
            '{"items":[{"name":"  ","calories":1,"protein":1,"carbs":1,"fats":1}],'
            '"total":{"calories":1,"protein":1,"carbs":1,"fats":1}}'
        )


def test_extract_json_object_positions() -> None:
    text = 'abc {"a": 1} def'
    obj, start, end = extract_json_object(text)
    assert obj == {"a": 1}
    assert text[start:end] == '{"a": 1}'
