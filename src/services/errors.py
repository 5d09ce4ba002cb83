class ServiceError(Exception):
    pass


class InvalidURLError(ServiceError):
    pass


class PrivateOrUnavailableError(ServiceError):
    pass


class RateLimitedError(ServiceError):
    pass


class FetchFailedError(ServiceError):
    def __init__(self, url: str, reason: str, status_code: int | None = None):
        super().__init__(f"Fetch failed for {url}: {reason}")
        self.url = url
        self.reason = reason
        self.status_code = status_code


class NetworkTimeoutError(ServiceError):
    def __init__(self, url: str, timeout_seconds: float):
        super().__init__(f"Network timeout after {timeout_seconds}s: {url}")
        self.url = url
        self.timeout_seconds = timeout_seconds


class LLMConfigurationError(ServiceError):
    pass


class LLMProviderError(ServiceError):
    def __init__(self, errors: list[str]):
        super().__init__(f"All LLM providers failed: {'; '.join(errors)}")
        self.errors = errors


class LLMResponseError(ServiceError):
    pass


class RecipeParseError(ServiceError):
    def __init__(self, url: str):
        super().__init__("Failed to parse recipe from URL")
        self.url = url
