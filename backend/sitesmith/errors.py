class SitesmithError(Exception):
    """Base class for every error raised by the generation core."""


class ProviderUnavailable(SitesmithError):
    """No configured, non-exhausted backend exists for a task category."""

    def __init__(self, category: str, message: str | None = None):
        self.category = category
        super().__init__(message or f"No provider available for category '{category}'")


NoProviderAvailable = ProviderUnavailable


class ProviderRequestFailed(SitesmithError):
    """A single backend call failed. ``status`` is None for transport errors."""

    def __init__(self, backend: str, status: int | None, body: str):
        self.backend = backend
        self.status = status
        self.body = body
        super().__init__(f"{backend} request failed ({status if status is not None else 'no response'}): {body[:300]}")

    @property
    def exhausts_backend(self) -> bool:
        return self.status in (401, 402, 403, 429)


class ManifestParseFailed(SitesmithError):
    """Backend output could not be turned into an intent manifest."""


class SimilarityRejected(SitesmithError):
    """A design brief scored too close to recent history."""

    def __init__(self, overall: float, threshold: float):
        self.overall = overall
        self.threshold = threshold
        super().__init__(f"Design similarity {overall:.2f} exceeds threshold {threshold:.2f}")


class GenerationCancelled(SitesmithError):
    """The caller set the cancellation flag on a running generation."""


class GenerationFailed(SitesmithError):
    """Terminal failure of a run. The original exception is kept on ``cause``."""

    def __init__(self, message: str, cause: BaseException | None = None):
        self.cause = cause
        super().__init__(message)


class LogReloadRejected(SitesmithError):
    """A live run's log may not be replaced from persisted storage."""

    def __init__(self, run_id: str, steps: int):
        self.run_id = run_id
        self.steps = steps
        super().__init__(f"Run {run_id} is in progress ({steps} steps); refusing to reload its log")
