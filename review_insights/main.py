import logging
from contextlib import asynccontextmanager
from functools import partial

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from review_insights.config import Settings, settings
from review_insights.models.api import ApiResponse
from review_insights.routers import reviews
from review_insights.services.analyzer import ReviewAnalyzer
from review_insights.services.browser_pool import BrowserPool
from review_insights.services.claude_client import ClaudeClient
from review_insights.services.pipeline import ReviewPipeline
from review_insights.services.places_client import PlacesClient
from review_insights.services.scraper import ReviewScraper, build_driver

VERSION = "1.0.0"

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


def build_pipeline(config: Settings) -> tuple[ReviewPipeline, BrowserPool]:
    """Wire scraper and analyzer from settings. The caller owns the pool."""
    pool = BrowserPool(
        driver_factory=partial(
            build_driver,
            headless=config.scraper_headless,
            page_load_timeout=config.navigation_timeout,
        ),
        pool_size=config.browser_pool_size,
        acquire_timeout=config.browser_pool_acquire_timeout,
        max_uses=config.browser_max_uses,
    )
    scraper = ReviewScraper(
        pool,
        review_section_timeout=config.review_section_timeout,
        scroll_count=config.scroll_count,
        scroll_settle_seconds=config.scroll_settle_seconds,
        max_reviews=config.max_reviews,
    )
    text_generator = ClaudeClient(
        api_key=config.anthropic_api_key,
        model_name=config.model_name,
        max_tokens=config.model_max_tokens,
        timeout=config.model_timeout,
    )
    photo_lookup = None
    if config.google_places_api_key:
        photo_lookup = PlacesClient(
            api_key=config.google_places_api_key,
            timeout=config.places_timeout,
            max_width=config.photo_max_width,
        )
    else:
        logger.warning("GOOGLE_PLACES_API_KEY not set, photo enrichment disabled")
    analyzer = ReviewAnalyzer(text_generator, photo_lookup)
    return ReviewPipeline(scraper, analyzer), pool


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the browser pool and clients on startup, release them on shutdown."""
    logger.info("Starting up, wiring review pipeline...")
    pipeline, pool = build_pipeline(settings)
    app.state.pipeline = pipeline
    app.state.browser_pool = pool
    logger.info("Startup complete (browser pool size %d).", pool.pool_size)
    yield
    logger.info("Shutting down.")
    pool.shutdown()
    if pipeline.analyzer.photo_lookup is not None:
        pipeline.analyzer.photo_lookup.close()


app = FastAPI(
    title="Restaurant Review Insights",
    description=(
        "Scrapes Google Maps reviews for a restaurant and turns them into a "
        "structured sentiment report with Claude."
    ),
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(reviews.router)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    fields = ", ".join(".".join(str(part) for part in err["loc"]) for err in exc.errors())
    body = ApiResponse(
        success=False, error=f"Invalid request: {fields}", error_code="BadRequest", status_code=400
    )
    return JSONResponse(status_code=body.status_code, content=body.model_dump(exclude_none=True))


@app.get("/health", tags=["health"])
async def health_check(request: Request):
    pool = getattr(request.app.state, "browser_pool", None)
    body = {"status": "ok", "version": VERSION}
    if pool is not None:
        body["browser_pool"] = pool.stats()
    return body
