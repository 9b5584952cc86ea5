"""Pydantic request schemas — every JSON body is validated here before it reaches a store."""

from __future__ import annotations

import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from models import QuizAnswer, QuizScore, QuizSubmission

__all__ = [
    "ActivityRequest",
    "QuizAnswerIn",
    "QuizRequest",
    "CodeSnapshotRequest",
    "VideoRequest",
    "RegisterRequest",
    "LoginRequest",
    "validation_message",
]

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ApiModel(BaseModel):
    """Accepts the frontend's camelCase keys; snake_case works too."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class ActivityRequest(ApiModel):
    activity_id: str = Field(min_length=1, max_length=200)


class QuizAnswerIn(ApiModel):
    question_id: str = Field(min_length=1, max_length=200)
    answer: Any = None
    correct: bool = False
    points: Optional[float] = Field(default=None, ge=0)

    @property
    def awarded(self) -> float:
        if self.points is not None:
            return self.points
        return 1 if self.correct else 0


class QuizRequest(ApiModel):
    answers: list[QuizAnswerIn] = Field(min_length=1)
    quiz_id: Optional[str] = Field(default=None, min_length=1, max_length=200)
    max_score: Optional[float] = Field(default=None, gt=0)

    @property
    def total_score(self) -> float:
        return sum(a.awarded for a in self.answers)

    @property
    def effective_max_score(self) -> float:
        return self.max_score if self.max_score is not None else len(self.answers)

    @model_validator(mode="after")
    def _score_within_max(self) -> QuizRequest:
        if self.quiz_id and self.total_score > self.effective_max_score:
            raise ValueError(
                f"Awarded points ({self.total_score:g}) exceed maxScore ({self.effective_max_score:g})"
            )
        return self

    def scores(self) -> list[QuizScore]:
        return [
            QuizScore(question_id=a.question_id, correct=a.correct, answer=a.answer)
            for a in self.answers
        ]

    def submission(self, user_id: int, lesson_id: str) -> Optional[QuizSubmission]:
        """A submission record when the body names a quiz, else None."""
        if not self.quiz_id:
            return None
        return QuizSubmission(
            user_id=user_id,
            lesson_id=lesson_id,
            quiz_id=self.quiz_id,
            answers=[
                QuizAnswer(question_id=a.question_id, answer=a.answer,
                           correct=a.correct, points=a.awarded)
                for a in self.answers
            ],
            total_score=self.total_score,
            max_score=self.effective_max_score,
        )


class CodeSnapshotRequest(ApiModel):
    code: str = Field(max_length=100_000)
    editor_id: str = Field(default="default", min_length=1, max_length=200)


class VideoRequest(ApiModel):
    video_url: str = Field(min_length=1, max_length=2000)


class RegisterRequest(ApiModel):
    name: str = Field(min_length=1, max_length=200)
    email: str = Field(max_length=320)
    password: str

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, v: str) -> str:
        v = v.strip().lower()
        if not _EMAIL_RE.match(v):
            raise ValueError("Invalid email address")
        return v


class LoginRequest(ApiModel):
    email: str = Field(min_length=1, max_length=320)
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def _lower(cls, v: str) -> str:
        return v.strip().lower()


def validation_message(exc: ValidationError) -> str:
    """First validation error as a single readable line."""
    errors = exc.errors()
    if not errors:
        return "Invalid request body"
    first = errors[0]
    loc = ".".join(str(p) for p in first.get("loc", ()))
    msg = first.get("msg", "Invalid value")
    return f"{loc}: {msg}" if loc else msg
