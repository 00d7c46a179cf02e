import logging
from typing import Sequence

from review_insights.models.analysis import AnalysisResult
from review_insights.models.api import ApiResponse
from review_insights.models.review import ReviewRecord
from review_insights.services.analyzer import ReviewAnalyzer
from review_insights.services.errors import NoReviewsFound, ReviewInsightError
from review_insights.services.scraper import ReviewScraper

logger = logging.getLogger(__name__)


def _failure(exc: ReviewInsightError) -> ApiResponse:
    return ApiResponse(
        success=False, error=exc.message, error_code=exc.code, status_code=exc.status_code
    )


class ReviewPipeline:
    """
    Request-scoped sequencing of acquisition and analysis.

    Every outcome is reported as an ApiResponse. Errors from the taxonomy are
    reduced to their user-facing message; nothing is retried.
    """

    def __init__(self, scraper: ReviewScraper, analyzer: ReviewAnalyzer):
        self.scraper = scraper
        self.analyzer = analyzer

    def acquire_reviews(self, url: str) -> ApiResponse[list[ReviewRecord]]:
        try:
            reviews = self._acquire(url)
        except ReviewInsightError as exc:
            return _failure(exc)
        return ApiResponse[list[ReviewRecord]](success=True, data=reviews)

    def analyze_reviews(
        self, reviews: Sequence[ReviewRecord], place_id: str | None = None
    ) -> ApiResponse[AnalysisResult]:
        try:
            result = self._analyze(reviews, place_id)
        except ReviewInsightError as exc:
            return _failure(exc)
        return ApiResponse[AnalysisResult](success=True, data=result)

    def run(self, url: str, place_id: str | None = None) -> ApiResponse[AnalysisResult]:
        """Acquire reviews from ``url`` and analyze them in one request."""
        try:
            reviews = self._acquire(url)
            result = self._analyze(reviews, place_id)
        except ReviewInsightError as exc:
            return _failure(exc)
        return ApiResponse[AnalysisResult](success=True, data=result)

    def _acquire(self, url: str) -> list[ReviewRecord]:
        try:
            reviews = self.scraper.scrape(url)
        except ReviewInsightError as exc:
            logger.warning("Acquisition failed for %s: %s (%s)", url, exc.code, exc.detail)
            raise
        if not reviews:
            logger.warning("No reviews found at %s", url)
            raise NoReviewsFound(f"no review elements at {url}")
        return reviews

    def _analyze(self, reviews: Sequence[ReviewRecord], place_id: str | None) -> AnalysisResult:
        if not reviews:
            raise NoReviewsFound("no reviews provided")
        try:
            return self.analyzer.analyze(reviews, place_id)
        except ReviewInsightError as exc:
            logger.warning("Analysis failed: %s (%s)", exc.code, exc.detail)
            raise
