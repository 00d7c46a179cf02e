import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from review_insights.models.api import AnalyzeRequest, ApiResponse, CrawlRequest, InsightsRequest
from review_insights.services.pipeline import ReviewPipeline

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["reviews"])


def get_pipeline(request: Request) -> ReviewPipeline:
    return request.app.state.pipeline


def _respond(response: ApiResponse) -> JSONResponse:
    return JSONResponse(
        status_code=response.status_code,
        content=response.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


# Sync handlers: scraping blocks, so these must run in FastAPI's threadpool.


@router.post("/crawl")
def crawl_reviews(request: CrawlRequest, pipeline: ReviewPipeline = Depends(get_pipeline)):
    """Scrape up to 20 reviews from a Google Maps place URL."""
    return _respond(pipeline.acquire_reviews(str(request.url)))


@router.post("/analyze")
def analyze_reviews(request: AnalyzeRequest, pipeline: ReviewPipeline = Depends(get_pipeline)):
    """Summarize already scraped reviews and optionally attach a place photo."""
    return _respond(pipeline.analyze_reviews(request.reviews, request.place_id))


@router.post("/insights")
def review_insights(request: InsightsRequest, pipeline: ReviewPipeline = Depends(get_pipeline)):
    """
    Scrape and analyze in one call.

    1. Crawl the place page for reviews (fails with NoReviewsFound when empty).
    2. Ask Claude for sentiment, keywords, summary and dishes.
    3. Attach the server-side average rating and, if available, a photo.
    """
    return _respond(pipeline.run(str(request.url), request.place_id))
