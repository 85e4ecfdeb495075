"""Error taxonomy for a prediction cycle.

Optional inputs that are missing are not errors: the engine substitutes
neutral values and reports the gap through ``data_quality``.
"""


class PredictionError(Exception):
    retryable = False


class UpstreamUnavailable(PredictionError):
    """A provider failed, timed out or returned something unusable."""


class RateLimited(PredictionError):
    """The provider rejected a request for quota reasons (HTTP 429)."""

    retryable = True


class MissingInput(PredictionError):
    """A required field is absent and there is nothing to score."""


class WaitCancelled(PredictionError):
    """The caller cancelled while waiting for a rate-limit slot."""
