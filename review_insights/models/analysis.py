from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    MIXED = "mixed"
    NEUTRAL = "neutral"


def _string_list(value) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


class AnalysisPayload(BaseModel):
    """The part of the analysis produced by the text generation model.

    ``summary`` and ``sentiment`` are required. List fields tolerate being
    absent or of the wrong type and fall back to an empty list. Unknown keys,
    including any ``average_rating`` the model may invent, are ignored.
    """

    model_config = ConfigDict(extra="ignore")

    sentiment: Sentiment
    summary: str = Field(min_length=1)
    positive_keywords: list[str] = Field(default_factory=list)
    negative_keywords: list[str] = Field(default_factory=list)
    mentioned_menu_items: list[str] = Field(default_factory=list)
    recommended_dishes: list[str] = Field(default_factory=list)

    @field_validator("sentiment", mode="before")
    @classmethod
    def _normalize_sentiment(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("summary", mode="before")
    @classmethod
    def _strip_summary(cls, value):
        # Non-strings are left alone so strict type validation rejects them.
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator(
        "positive_keywords",
        "negative_keywords",
        "mentioned_menu_items",
        "recommended_dishes",
        mode="before",
    )
    @classmethod
    def _coerce_lists(cls, value):
        return _string_list(value)


class AnalysisResult(AnalysisPayload):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    average_rating: float
    photo_urls: list[str] | None = Field(default=None, alias="photoUrls")
