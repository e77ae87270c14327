from __future__ import annotations


class RecordError(ValueError):
    """A single provider record could not be normalized.

    The run continues; the record is reported in the run summary.
    """

    def __init__(self, message: str, *, address: str | None = None) -> None:
        super().__init__(message)
        self.address = address


class ProviderError(RuntimeError):
    """The provider API was unreachable or answered with something unusable."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class GeocodingError(RuntimeError):
    """The geocoder answered but no county could be read from the response."""


class GeocodingUnavailable(GeocodingError):
    """The geocoder could not be reached (network error, timeout, HTTP error)."""


class StoreError(RuntimeError):
    """A write to one of the persistent stores failed."""


class SyncError(RuntimeError):
    """Fatal failure of a sync run. Carries the city code and the cause."""

    def __init__(self, city_code: str, cause: BaseException | str) -> None:
        self.city_code = city_code
        self.cause = cause
        super().__init__(f"[{city_code}] sync failed: {cause}")


class SyncCancelled(SyncError):
    pass
