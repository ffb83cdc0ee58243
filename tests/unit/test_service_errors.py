from __future__ import annotations

from authentik.services.errors import (
    CacheStoreError,
    CollectionCreationError,
    ConfigurationError,
    InvalidURLError,
    MetadataUnavailableError,
    NetworkTimeoutError,
    PlacesApiError,
    RetryExhaustedError,
    ServiceError,
    UnsupportedPlatformError,
)


class TestServiceError:
    def test_base_exception(self) -> None:
        error = ServiceError("Base service error")
        assert str(error) == "Base service error"
        assert isinstance(error, Exception)


class TestPlacesApiError:
    def test_includes_status(self) -> None:
        error = PlacesApiError(403, "REQUEST_DENIED")
        assert "403" in str(error)
        assert error.status_code == 403
        assert error.detail == "REQUEST_DENIED"


class TestNetworkTimeoutError:
    def test_includes_url_and_timeout(self) -> None:
        error = NetworkTimeoutError("https://example.com/transcript", 30)
        assert "https://example.com/transcript" in str(error)
        assert "30" in str(error)
        assert error.timeout_seconds == 30


class TestRetryExhaustedError:
    def test_includes_operation_and_attempts(self) -> None:
        error = RetryExhaustedError("Mention extraction", 5)
        assert str(error) == "Mention extraction still rate limited after 5 attempts"
        assert error.attempts == 5


class TestCacheStoreError:
    def test_includes_operation(self) -> None:
        error = CacheStoreError("get", "timeout")
        assert error.operation == "get"
        assert "timeout" in str(error)


class TestErrorHierarchy:
    def test_all_inherit_from_service_error(self) -> None:
        errors = [
            ConfigurationError("missing key"),
            InvalidURLError("bad"),
            UnsupportedPlatformError("vimeo"),
            MetadataUnavailableError("private"),
            CollectionCreationError("denied"),
            PlacesApiError(500),
        ]
        for error in errors:
            assert isinstance(error, ServiceError)
