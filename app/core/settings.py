import os
from dataclasses import dataclass

from app.core.errors import ConfigurationError


@dataclass
class Settings:
    env: str
    cors_allow_origin: str
    max_messages: int
    max_message_length: int
    max_total_chars: int
    rate_limit_max: int
    rate_limit_window_sec: int
    session_ttl_sec: int
    faq_cache_ttl_sec: int
    summary_threshold: int
    keep_recent_messages: int
    sweep_interval_sec: int
    redis_url: str
    chat_log_path: str
    log_level: str
    base_url: str
    api_key: str
    api_key_prefix: str
    api_key_min_length: int
    model: str
    timeout_ms: int
    max_retries: int
    retry_backoff_ms: int
    max_tokens: int
    temperature: float
    top_p: float

    @property
    def is_development(self) -> bool:
        return self.env == "development"


def load_settings() -> Settings:
    return Settings(
        env=os.getenv("CHAT_ENV", "production").strip().lower(),
        cors_allow_origin=os.getenv("CHAT_CORS_ALLOW_ORIGIN", "*").strip() or "*",
        max_messages=max(1, int(os.getenv("CHAT_MAX_MESSAGES", "100"))),
        max_message_length=max(1, int(os.getenv("CHAT_MAX_MESSAGE_LENGTH", "2000"))),
        max_total_chars=max(1, int(os.getenv("CHAT_MAX_TOTAL_CHARS", "8000"))),
        rate_limit_max=max(1, int(os.getenv("CHAT_RATE_LIMIT_MAX", "10"))),
        rate_limit_window_sec=max(1, int(os.getenv("CHAT_RATE_LIMIT_WINDOW_SEC", "60"))),
        session_ttl_sec=max(1, int(os.getenv("CHAT_SESSION_TTL_SEC", "1800"))),
        faq_cache_ttl_sec=max(1, int(os.getenv("CHAT_FAQ_CACHE_TTL_SEC", "300"))),
        summary_threshold=max(1, int(os.getenv("CHAT_SUMMARY_THRESHOLD", "10"))),
        keep_recent_messages=max(1, int(os.getenv("CHAT_KEEP_RECENT_MESSAGES", "4"))),
        sweep_interval_sec=max(0, int(os.getenv("CHAT_SWEEP_INTERVAL_SEC", "0"))),
        redis_url=os.getenv("CHAT_REDIS_URL", "").strip(),
        chat_log_path=os.getenv("CHAT_LOG_PATH", "").strip(),
        log_level=os.getenv("CHAT_LOG_LEVEL", "INFO").strip().upper() or "INFO",
        base_url=os.getenv("LLM_BASE_URL", "https://ai.gateway.lovable.dev/v1").rstrip("/"),
        api_key=os.getenv("LLM_API_KEY", "").strip(),
        api_key_prefix=os.getenv("LLM_API_KEY_PREFIX", "lpak_"),
        api_key_min_length=max(1, int(os.getenv("LLM_API_KEY_MIN_LENGTH", "31"))),
        model=os.getenv("LLM_MODEL", "google/gemini-1.5-flash").strip(),
        timeout_ms=max(1, int(os.getenv("LLM_TIMEOUT_MS", "30000"))),
        max_retries=max(0, int(os.getenv("LLM_MAX_RETRIES", "2"))),
        retry_backoff_ms=max(0, int(os.getenv("LLM_RETRY_BACKOFF_MS", "1000"))),
        max_tokens=max(1, int(os.getenv("LLM_MAX_TOKENS", "1024"))),
        temperature=float(os.getenv("LLM_TEMPERATURE", "0.7")),
        top_p=float(os.getenv("LLM_TOP_P", "0.95")),
    )


def validate_api_key(settings: Settings) -> str:
    key = settings.api_key
    if not key:
        raise ConfigurationError("LLM_API_KEY is not configured")
    if not key.startswith(settings.api_key_prefix) or len(key) < settings.api_key_min_length:
        raise ConfigurationError("LLM_API_KEY has an invalid format")
    return key


SETTINGS = load_settings()
