class ServiceError(Exception):
    pass


class ConfigurationError(ServiceError):
    pass


class InvalidURLError(ServiceError):
    pass


class UnsupportedPlatformError(ServiceError):
    pass


class MetadataUnavailableError(ServiceError):
    pass


class FetchFailedError(ServiceError):
    pass


class RateLimitedError(ServiceError):
    pass


class PlacesApiError(ServiceError):
    def __init__(self, status_code: int, detail: str = ""):
        super().__init__(f"Google Places API error: {status_code} - {detail}")
        self.status_code = status_code
        self.detail = detail


class TranscriptServiceError(ServiceError):
    pass


class CollectionCreationError(ServiceError):
    pass


class NetworkTimeoutError(ServiceError):
    def __init__(self, url: str, timeout_seconds: float):
        super().__init__(f"Network timeout after {timeout_seconds}s: {url}")
        self.url = url
        self.timeout_seconds = timeout_seconds


class RetryExhaustedError(ServiceError):
    def __init__(self, operation_name: str, attempts: int):
        super().__init__(f"{operation_name} still rate limited after {attempts} attempts")
        self.operation_name = operation_name
        self.attempts = attempts


class CacheStoreError(ServiceError):
    def __init__(self, operation: str, reason: str):
        super().__init__(f"Cache store error during {operation}: {reason}")
        self.operation = operation
        self.reason = reason
