"""Prompt & parsing utilities for generative meal photo analysis."""

from __future__ import annotations

import json
from typing import Any, List, Tuple

from pydantic import BaseModel, Field, ValidationError, field_validator

from mealcapture.domain.recognition.models import (
    AnalyzedItem,
    GenerativeOutcome,
    MacroValues,
)

# Bump when the schema or the instructions change.
PROMPT_VERSION = 1

ANALYSIS_PROMPT = (
    "Analyze this meal photo and estimate its nutritional content."
    " MUST: reply with exactly one JSON object using this schema: "
    '{"items":[{"name":"<food name>","quantity":"<estimated quantity, e.g. 1 cup or 150g>",'
    '"calories":<kcal>,"protein":<g>,"carbs":<g>,"fats":<g>}],'
    '"total":{"calories":<kcal>,"protein":<g>,"carbs":<g>,"fats":<g>},'
    '"summary":"<one or two sentences describing the meal>"}.'
    " Rules: numbers only for nutrient values, no units inside numbers;"
    " total covers every food visible in the photo;"
    ' if no food is visible return {"items":[],"total":{"calories":0,"protein":0,"carbs":0,"fats":0},'
    '"summary":"No food detected"}.'
)

_DECODER = json.JSONDecoder()


class ParseError(Exception):
    pass


class _RawMacros(BaseModel):
    calories: float = Field(..., ge=0)
    protein: float = Field(..., ge=0)
    carbs: float = Field(..., ge=0)
    fats: float = Field(..., ge=0)

    def to_macros(self) -> MacroValues:
        return MacroValues(
            calories=self.calories, protein=self.protein, carbs=self.carbs, fats=self.fats
        )


class _RawItem(_RawMacros):
    name: str = Field(..., min_length=1)
    quantity: str = ""

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name cannot be blank")
        return v.strip()

    @field_validator("quantity", mode="before")
    @classmethod
    def quantity_as_text(cls, v: Any) -> str:
        return "" if v is None else str(v).strip()


class _RawAnalysis(BaseModel):
    items: List[_RawItem]
    total: _RawMacros
    summary: str = ""


def extract_json_object(text: str) -> Tuple[dict[str, Any], int, int]:
    """
    Parse the first brace-delimited JSON object in free text.

    Returns:
        (object, start index, end index) of the JSON substring

    Raises:
        ParseError: If no object is present or it does not parse
    """
    start = text.find("{")
    if start == -1:
        raise ParseError("NO_JSON_OBJECT")
    try:
        obj, end = _DECODER.raw_decode(text, start)
    except json.JSONDecodeError as exc:
        raise ParseError(f"INVALID_JSON: {exc.msg}") from exc
    return obj, start, end


def parse_analysis(raw_text: str) -> GenerativeOutcome:
    """
    Turn a generative service reply into an outcome.

    The summary comes from the JSON `summary` field; when that is
    empty, any prose around the JSON object is used instead.

    Raises:
        ParseError: Missing/invalid JSON, schema mismatch, or no items
    """
    data, start, end = extract_json_object(raw_text)
    try:
        analysis = _RawAnalysis.model_validate(data)
    except ValidationError as exc:
        raise ParseError(f"SCHEMA_MISMATCH: {exc.error_count()} error(s)") from exc

    if not analysis.items:
        raise ParseError("EMPTY_ITEMS")

    summary = analysis.summary.strip()
    if not summary:
        summary = " ".join(part.strip() for part in (raw_text[:start], raw_text[end:]) if part.strip())

    items = [
        AnalyzedItem(name=raw.name, quantity=raw.quantity, macros=raw.to_macros())
        for raw in analysis.items
    ]
    return GenerativeOutcome(items=items, total=analysis.total.to_macros(), summary=summary)


__all__ = [
    "ANALYSIS_PROMPT",
    "PROMPT_VERSION",
    "ParseError",
    "extract_json_object",
    "parse_analysis",
]
