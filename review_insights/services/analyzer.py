import json
import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence

from pydantic import ValidationError as PydanticValidationError

from review_insights.models.analysis import AnalysisPayload, AnalysisResult
from review_insights.models.review import ReviewRecord
from review_insights.services.claude_client import TextGenerator
from review_insights.services.errors import MalformedModelResponse, ValidationError
from review_insights.services.places_client import PhotoLookup
from review_insights.services.prompt_builder import build_prompt

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Enriched:
    photo_urls: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class NotEnriched:
    reason: str


def average_rating(reviews: Sequence[ReviewRecord]) -> float:
    """Mean star rating rounded half-up to one decimal; 0.0 for no reviews."""
    if not reviews:
        return 0.0
    mean = Decimal(sum(review.rating for review in reviews)) / Decimal(len(reviews))
    return float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def extract_json_object(raw: str) -> dict:
    """
    Parse the first balanced ``{...}`` block found in ``raw``.

    Text before and after the block is ignored. Braces inside JSON strings do
    not count towards the balance. Only the first block is considered.

    Raises:
        MalformedModelResponse: No balanced block, or it is not valid JSON.
    """
    start = raw.find("{")
    if start == -1:
        raise MalformedModelResponse("no JSON object in model response")

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(raw)):
        char = raw[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                candidate = raw[start : index + 1]
                try:
                    return json.loads(candidate)
                except (ValueError, RecursionError) as exc:
                    # ValueError covers JSONDecodeError and oversized integers.
                    raise MalformedModelResponse(
                        f"invalid JSON object: {type(exc).__name__}"
                    ) from exc

    raise MalformedModelResponse("unbalanced JSON object in model response")


class ReviewAnalyzer:
    """
    Turns review records into an AnalysisResult.

    The text generator and the optional photo lookup are injected so tests
    and alternative providers can replace them.
    """

    def __init__(self, text_generator: TextGenerator, photo_lookup: PhotoLookup | None = None):
        self.text_generator = text_generator
        self.photo_lookup = photo_lookup

    def analyze(self, reviews: Sequence[ReviewRecord], place_id: str | None = None) -> AnalysisResult:
        """
        Analyze ``reviews`` with one model call and attach the average rating.

        Raises:
            ModelCallError: The model call failed.
            MalformedModelResponse: No parseable JSON object in the reply.
            ValidationError: The JSON object lacks required fields.
        """
        rating = average_rating(reviews)
        prompt = build_prompt(reviews)
        logger.info("Analyzing %d reviews (average rating %.1f)", len(reviews), rating)

        raw = self.text_generator.submit(prompt)
        payload = self._validate(extract_json_object(raw))

        enrichment = self._enrich(place_id)
        if isinstance(enrichment, Enriched):
            logger.info("Attached %d photo(s) for place %s", len(enrichment.photo_urls), place_id)
            photo_urls = enrichment.photo_urls
        else:
            logger.info("Photo enrichment skipped: %s", enrichment.reason)
            photo_urls = None

        return AnalysisResult(
            **payload.model_dump(),
            average_rating=rating,
            photo_urls=photo_urls,
        )

    def _validate(self, data: dict) -> AnalysisPayload:
        try:
            return AnalysisPayload.model_validate(data)
        except PydanticValidationError as exc:
            fields = ", ".join(".".join(str(part) for part in err["loc"]) for err in exc.errors())
            logger.warning("Model response failed validation on: %s", fields)
            raise ValidationError(f"invalid analysis fields: {fields}") from exc

    def _enrich(self, place_id: str | None) -> Enriched | NotEnriched:
        if not place_id:
            return NotEnriched("no place id")
        if self.photo_lookup is None:
            return NotEnriched("photo lookup not configured")

        try:
            reference = self.photo_lookup.lookup(place_id)
            if not reference:
                return NotEnriched(f"no photos for place {place_id}")
            return Enriched([self.photo_lookup.photo_url(reference)])
        except Exception as exc:
            # Enrichment must never fail an otherwise successful analysis.
            logger.warning("Photo lookup failed for place %s: %s", place_id, exc)
            return NotEnriched(f"{type(exc).__name__}: {exc}")
