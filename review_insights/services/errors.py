"""Error taxonomy shared by the acquisition and analysis stages.

Every error carries a fixed, human-readable ``message`` that is safe to show
to an end user and an HTTP ``status_code`` used by the API layer. The
underlying cause is kept in the exception ``detail`` and chained with
``raise ... from`` so it reaches the logs without leaking into responses.
"""


class ReviewInsightError(Exception):
    message = "Something went wrong while processing the request."
    status_code = 500

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.message
        super().__init__(self.detail)

    @property
    def code(self) -> str:
        return type(self).__name__


# --- acquisition tier -------------------------------------------------------


class AcquisitionError(ReviewInsightError):
    message = "Failed to crawl reviews."


class LaunchError(AcquisitionError):
    message = "Could not start a browser session to read reviews."
    status_code = 503


class ScraperBusy(AcquisitionError):
    message = "All browser sessions are busy. Please try again shortly."
    status_code = 503


class NavigationTimeout(AcquisitionError):
    message = "Page navigation timed out."
    status_code = 504


class SelectorNotFound(AcquisitionError):
    message = "Could not find the review elements. The page structure might have changed."
    status_code = 502


class UnexpectedFault(AcquisitionError):
    message = "Failed to crawl reviews due to an unexpected error."
    status_code = 500


class NoReviewsFound(AcquisitionError):
    message = "No reviews were found for this place."
    status_code = 404


# --- analysis tier ----------------------------------------------------------


class AnalysisError(ReviewInsightError):
    message = "Failed to analyze reviews."


class ModelCallError(AnalysisError):
    message = "The text analysis service is unavailable."
    status_code = 502


class MalformedModelResponse(AnalysisError):
    message = "The text analysis service returned an unreadable response."
    status_code = 502


class ValidationError(AnalysisError):
    message = "The text analysis service returned an incomplete analysis."
    status_code = 502
