from pydantic import BaseModel, ConfigDict, Field


class ReviewRecord(BaseModel):
    """One review as it was read from the source page."""

    model_config = ConfigDict(frozen=True)

    text: str
    rating: int = Field(ge=0, le=5)
    date: str  # source-formatted, e.g. "2 weeks ago"
