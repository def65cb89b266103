"""
Configuration Settings.
"""

from pydantic_settings import BaseSettings
from typing import Optional

from ..models.chat import DEFAULT_THREAD_TITLE

DEFAULT_API_URL = "http://localhost:8000/gemini"
API_PATH = "/gemini"


class Settings(BaseSettings):
    """Application settings."""

    # App info
    app_name: str = "ChatStream"
    app_version: str = "1.0.0"
    debug: bool = False

    # Chat service client
    chat_api_url: Optional[str] = None  # resolved by resolve_api_url()
    connect_timeout: float = 10.0
    request_timeout: Optional[float] = None  # None: stream is bounded only by stop()

    # Thread persistence
    storage_path: str = "./data"
    storage_key: str = "llm-powered-chat-platform::threads"

    # Session behaviour
    default_thread_title: str = DEFAULT_THREAD_TITLE
    title_max_length: int = 48
    notice_dismiss_seconds: float = 3.0

    # Relay LLM provider settings
    llm_provider: str = "gemini"  # "gemini" or "openai"
    llm_api_key: Optional[str] = None
    llm_model: Optional[str] = None  # uses provider default if not set
    llm_base_url: Optional[str] = None  # uses provider default if not set
    llm_max_output_tokens: int = 100

    # Legacy key (still accepted)
    google_gen_ai_key: Optional[str] = None

    # Relay server
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = ["*"]

    # Logging configuration
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file_path: str = "./logs/chatstream.log"
    log_file_enabled: bool = True
    log_console_enabled: bool = True
    log_json_format: bool = True  # JSON format for files, human-readable for console
    log_api_requests: bool = True  # Log all relay requests/responses
    log_llm_calls: bool = True  # Log each provider stream with duration

    class Config:
        env_file = ".env"
        case_sensitive = False


def resolve_api_url(configured: Optional[str]) -> str:
    """
    Resolve the chat endpoint from a configured base or full URL.

    Args:
        configured: Value from settings, may be None or a bare host

    Returns:
        URL ending in the relay's /gemini path
    """
    if configured is None or not configured.strip():
        return DEFAULT_API_URL
    trimmed = configured.strip()
    if trimmed.endswith(API_PATH):
        return trimmed
    return f"{trimmed.rstrip('/')}{API_PATH}"


settings = Settings()
