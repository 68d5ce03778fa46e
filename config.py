import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # Shared admin password (no admin row exists in users)
    ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD")

    # SQLite database file stored next to this file as dashboard.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "dashboard.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Session cookie name for our auth token
    AUTH_COOKIE_NAME = "dashboard_session"

    # 15 minutes, absolute from login (not renewed by activity)
    SESSION_LIFETIME_SECONDS = 15 * 60

    # Session/cookie security defaults
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = os.getenv("SESSION_COOKIE_SECURE", "false").lower() == "true"

    BCRYPT_ROUNDS = 12

    # Failed-login lockout (per IP, cleared only by an admin)
    MAX_LOGIN_ATTEMPTS = 3

    # Analysis quota
    RATE_LIMIT_WINDOW_SECONDS = 60 * 60
    DEFAULT_RATE_LIMIT_PER_HOUR = 20

    # LLM provider: "openai" (any OpenAI-compatible chat completions endpoint) or "anthropic"
    LLM_PROVIDER = os.getenv("LLM_PROVIDER", "openai").lower()

    # OpenAI-compatible endpoint
    LLM_API_URL = os.getenv("LLM_API_URL", "https://api.openai.com/v1/chat/completions")
    LLM_API_KEY = os.getenv("LLM_API_KEY")
    LLM_MODEL = os.getenv("LLM_MODEL", "gpt-4o")

    # Anthropic Messages API
    ANTHROPIC_API_URL = os.getenv("ANTHROPIC_API_URL", "https://api.anthropic.com/v1/messages")
    ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
    ANTHROPIC_MODEL = os.getenv("ANTHROPIC_MODEL", "claude-sonnet-4-20250514")
    ANTHROPIC_VERSION = "2023-06-01"

    LLM_TIMEOUT_SECONDS = int(os.getenv("LLM_TIMEOUT_SECONDS", "60"))
    LLM_MAX_TOKENS = 1500
    LLM_TEMPERATURE = 0.3

    # Callable(prompt) -> str; None means "use the HTTP client above"
    ANALYSIS_PROVIDER = None
    ANALYSIS_CACHE_SECONDS = int(os.getenv("ANALYSIS_CACHE_SECONDS", "300"))

    # Number of reverse proxies in front of the app that append X-Forwarded-For.
    # 0 means the connection address is the client.
    PROXY_FIX_X_FOR = int(os.getenv("PROXY_FIX_X_FOR", "0"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Basic app settings
    DEBUG = False
