from pathlib import Path
from typing import Iterable

from review_insights.models.review import ReviewRecord

# Changing the instruction text is a reviewed change: bump the version with it.
PROMPT_VERSION = "3"

_PROMPT_PATH = Path(__file__).parent.parent / "prompts" / "analysis_prompt.txt"
_INSTRUCTIONS = _PROMPT_PATH.read_text(encoding="utf-8").strip()

REVIEW_SEPARATOR = "\n---\n\n"


def _render_review(review: ReviewRecord) -> str:
    return f"Rating: {review.rating}/5\nReview: {review.text}\n"


def build_prompt(reviews: Iterable[ReviewRecord]) -> str:
    """Render reviews and the fixed analysis instructions into one prompt."""
    reviews_text = REVIEW_SEPARATOR.join(_render_review(review) for review in reviews)
    return f"Reviews:\n\n{reviews_text}\n{_INSTRUCTIONS}\n"
