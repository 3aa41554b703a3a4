"""Worksheet request parameters, defaults and selectable options."""

from __future__ import annotations

from typing import Any, Dict, List, Literal

from pydantic import BaseModel, Field, field_validator

from services.credits import compute_worksheet_cost


SUBJECTS = [
    {"value": "math", "label": "Mathematics"},
    {"value": "science", "label": "Science"},
    {"value": "english", "label": "English"},
    {"value": "history", "label": "History"},
    {"value": "geography", "label": "Geography"},
    {"value": "biology", "label": "Biology"},
    {"value": "chemistry", "label": "Chemistry"},
    {"value": "physics", "label": "Physics"},
]


def _ordinal(number: int) -> str:
    suffix = {1: "st", 2: "nd", 3: "rd"}.get(number, "th")
    return f"{number}{suffix}"


GRADES = [{"value": "K", "label": "Kindergarten"}] + [
    {"value": str(grade), "label": f"{_ordinal(grade)} Grade"} for grade in range(1, 13)
]

QUESTION_TYPES = [
    {"value": "multiple_choice", "label": "Multiple Choice"},
    {"value": "fill_blank", "label": "Fill in the Blank"},
    {"value": "true_false", "label": "True/False"},
    {"value": "matching", "label": "Matching"},
    {"value": "short_answer", "label": "Short Answer"},
    {"value": "essay", "label": "Essay"},
]

DIFFICULTIES = [
    {"value": "easy", "label": "Easy"},
    {"value": "medium", "label": "Medium"},
    {"value": "hard", "label": "Hard"},
]

LANGUAGES = [
    {"value": "en", "label": "English"},
    {"value": "es", "label": "Spanish"},
    {"value": "fr", "label": "French"},
    {"value": "de", "label": "German"},
    {"value": "pt", "label": "Portuguese"},
    {"value": "it", "label": "Italian"},
]

_GRADE_VALUES = {item["value"] for item in GRADES}
_QUESTION_TYPE_VALUES = {item["value"] for item in QUESTION_TYPES}


class WorksheetRequest(BaseModel):
    topic: str = Field(min_length=1, max_length=300)
    subject: str = "general"
    grade_level: str = "5"
    difficulty: Literal["easy", "medium", "hard"] = "medium"
    question_count: int = Field(default=10, ge=1, le=100)
    question_types: List[str] = Field(default_factory=lambda: ["multiple_choice"])
    language: str = "en"

    @field_validator("topic")
    @classmethod
    def _topic_not_blank(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("Topic is required")
        return cleaned

    @field_validator("subject", "language")
    @classmethod
    def _default_when_blank(cls, value: str, info) -> str:
        cleaned = (value or "").strip().lower()
        if cleaned:
            return cleaned
        return "general" if info.field_name == "subject" else "en"

    @field_validator("grade_level")
    @classmethod
    def _known_grade(cls, value: str) -> str:
        cleaned = (value or "").strip()
        if not cleaned:
            return "5"
        if cleaned.lower() == "k":
            return "K"
        if cleaned not in _GRADE_VALUES:
            raise ValueError(f"Unknown grade level: {value}")
        return cleaned

    @field_validator("question_types")
    @classmethod
    def _known_question_types(cls, value: List[str]) -> List[str]:
        if not value:
            return ["multiple_choice"]
        unknown = [item for item in value if item not in _QUESTION_TYPE_VALUES]
        if unknown:
            raise ValueError(f"Unknown question types: {', '.join(unknown)}")
        return list(dict.fromkeys(value))

    @property
    def credit_cost(self) -> int:
        return compute_worksheet_cost(self.question_count, self.grade_level)

    def charge_description(self) -> str:
        return f"Worksheet: {self.topic} ({self.question_count} questions, grade {self.grade_level})"


def worksheet_options() -> Dict[str, Any]:
    return {
        "subjects": SUBJECTS,
        "grades": GRADES,
        "question_types": QUESTION_TYPES,
        "difficulties": DIFFICULTIES,
        "languages": LANGUAGES,
    }
