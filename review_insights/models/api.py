from typing import Generic, TypeVar

from pydantic import BaseModel, Field, HttpUrl

from review_insights.models.review import ReviewRecord

T = TypeVar("T")


class CrawlRequest(BaseModel):
    url: HttpUrl


class AnalyzeRequest(BaseModel):
    reviews: list[ReviewRecord]
    place_id: str | None = Field(default=None, alias="placeId")


class InsightsRequest(BaseModel):
    url: HttpUrl
    place_id: str | None = Field(default=None, alias="placeId")


class ApiResponse(BaseModel, Generic[T]):
    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    status_code: int = Field(default=200, exclude=True)
