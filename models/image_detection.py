"""
Data shapes for the external image-detection (dosha/disease) API.

The remote contract is untrusted: every field is optional and unknown
fields are ignored.
"""
from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field


class ImageDetectionResult(BaseModel):
    dosha_prediction: str | None = None
    disease_prediction: str | None = None
    confidence: float | None = None
    extracted_features: Dict[str, Any] | None = None
    markdown: str | None = None

    model_config = ConfigDict(extra="ignore")


class ImageDetectionResponse(BaseModel):
    success: bool | None = None
    data: ImageDetectionResult | None = None
    error: str | None = None

    model_config = ConfigDict(extra="ignore")


class ParsedResult(BaseModel):
    """
    Post-processed view of a detection answer.

    ``raw_text`` is only filled when no disease line could be found, so the
    caller can fall back to showing the markdown as-is.
    """

    disease: str = ""
    remedy: List[str] = Field(default_factory=list)
    recommended: List[str] = Field(default_factory=list)
    avoid: List[str] = Field(default_factory=list)
    source: str | None = None
    logs: str | None = None
    raw_text: str | None = Field(default=None, alias="rawText")

    model_config = ConfigDict(populate_by_name=True)
