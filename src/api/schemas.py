from __future__ import annotations

from pydantic import BaseModel


class HealthStatus(BaseModel):
    status: str
    version: str


class HeadingModel(BaseModel):
    level: int
    text: str


class OutlineResponse(BaseModel):
    source: str
    headings: list[HeadingModel]
    paragraph_count: int
    sentence_count: int
    word_count: int


class FormatPair(BaseModel):
    source: str
    target: str
    path: list[str]


__all__ = ["FormatPair", "HeadingModel", "HealthStatus", "OutlineResponse"]
