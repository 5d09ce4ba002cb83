from __future__ import annotations

from src.services.errors import (
    FetchFailedError,
    InvalidURLError,
    LLMConfigurationError,
    LLMProviderError,
    LLMResponseError,
    NetworkTimeoutError,
    PrivateOrUnavailableError,
    RateLimitedError,
    RecipeParseError,
    ServiceError,
)


class TestServiceError:
    def test_base_exception(self) -> None:
        error = ServiceError("Base service error")
        assert str(error) == "Base service error"
        assert isinstance(error, Exception)


class TestInvalidURLError:
    def test_invalid_url(self) -> None:
        error = InvalidURLError("Not a valid URL")
        assert "Not a valid URL" in str(error)
        assert isinstance(error, ServiceError)


class TestPrivateOrUnavailableError:
    def test_private_content(self) -> None:
        error = PrivateOrUnavailableError("Video is private")
        assert "private" in str(error)
        assert isinstance(error, ServiceError)


class TestRateLimitedError:
    def test_rate_limited(self) -> None:
        error = RateLimitedError("Too many requests")
        assert "Too many requests" in str(error)
        assert isinstance(error, ServiceError)


class TestFetchFailedError:
    def test_keeps_url_reason_and_status(self) -> None:
        error = FetchFailedError("https://example.com/recipe", "HTTP 404", status_code=404)
        assert "https://example.com/recipe" in str(error)
        assert "HTTP 404" in str(error)
        assert error.url == "https://example.com/recipe"
        assert error.reason == "HTTP 404"
        assert error.status_code == 404

    def test_status_code_is_optional(self) -> None:
        error = FetchFailedError("https://example.com", "connection reset")
        assert error.status_code is None


class TestNetworkTimeoutError:
    def test_timeout_with_url_and_seconds(self) -> None:
        error = NetworkTimeoutError("https://example.com/video", 15.0)
        assert "https://example.com/video" in str(error)
        assert "15" in str(error)
        assert error.url == "https://example.com/video"
        assert error.timeout_seconds == 15.0

    def test_inherits_from_service_error(self) -> None:
        error = NetworkTimeoutError("https://example.com", 10.0)
        assert isinstance(error, ServiceError)


class TestLLMProviderError:
    def test_lists_every_provider_failure(self) -> None:
        error = LLMProviderError(["[Gemini] 500", "[OpenAI] timed out"])
        assert str(error) == "All LLM providers failed: [Gemini] 500; [OpenAI] timed out"
        assert error.errors == ["[Gemini] 500", "[OpenAI] timed out"]


class TestRecipeParseError:
    def test_fixed_message_and_url(self) -> None:
        error = RecipeParseError("https://example.com/blog")
        assert str(error) == "Failed to parse recipe from URL"
        assert error.url == "https://example.com/blog"


class TestExceptionHierarchy:
    def test_all_errors_inherit_from_service_error(self) -> None:
        assert issubclass(InvalidURLError, ServiceError)
        assert issubclass(PrivateOrUnavailableError, ServiceError)
        assert issubclass(RateLimitedError, ServiceError)
        assert issubclass(FetchFailedError, ServiceError)
        assert issubclass(NetworkTimeoutError, ServiceError)
        assert issubclass(LLMConfigurationError, ServiceError)
        assert issubclass(LLMProviderError, ServiceError)
        assert issubclass(LLMResponseError, ServiceError)
        assert issubclass(RecipeParseError, ServiceError)
