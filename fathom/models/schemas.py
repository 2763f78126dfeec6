from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


# --- Structured generation shapes ---


class QueryList(BaseModel):
    queries: list[str]


class LearningExtraction(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    learnings: list[str]
    follow_up_questions: list[str] = Field(alias="followUpQuestions")
