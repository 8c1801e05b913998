from __future__ import annotations

ERROR_CLIENT = "client"
ERROR_SERVER = "server"
ERROR_NETWORK = "network"


class ChatError(Exception):
    status_code = 500
    error_type = ERROR_SERVER
    # key into app.core.canned; None surfaces the raw message to the caller
    user_message_key: str | None = "fallback"
    retryable = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ChatError):
    status_code = 400
    error_type = ERROR_CLIENT
    user_message_key = None


class MethodNotAllowedError(ChatError):
    status_code = 405
    error_type = ERROR_CLIENT
    user_message_key = "method_not_allowed"


class RateLimitExceeded(ChatError):
    status_code = 429
    error_type = ERROR_CLIENT
    user_message_key = "rate_limited"

    def __init__(self, message: str, retry_after: int) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class ConfigurationError(ChatError):
    status_code = 500
    error_type = ERROR_SERVER
    user_message_key = "configuration"


class UpstreamTimeoutError(ChatError):
    status_code = 408
    error_type = ERROR_NETWORK
    user_message_key = "timeout"
    retryable = True


class UpstreamNetworkError(ChatError):
    status_code = 500
    error_type = ERROR_NETWORK
    retryable = True


class UpstreamStatusError(ChatError):
    status_code = 500
    error_type = ERROR_SERVER

    def __init__(self, upstream_status: int, body: str) -> None:
        super().__init__(f"API Error {upstream_status}: {body}")
        self.upstream_status = upstream_status
        self.retryable = upstream_status >= 500 or upstream_status == 429


class UpstreamProtocolError(ChatError):
    status_code = 500
    error_type = ERROR_SERVER
