# frontend/config.py
# Environment-aware configuration for the asset-management frontend

import os
from typing import Literal

# Environment detection - normalize to lowercase
_raw_env = os.environ.get("ENV", "production").lower()
ENV: Literal["local", "staging", "production"] = _raw_env if _raw_env in ("local", "staging", "production") else "production"  # type: ignore

IS_LOCAL = (ENV == "local")
IS_STAGING = (ENV == "staging")
IS_PROD = (ENV == "production")

IS_DEV = IS_LOCAL

# All REST endpoints live under this prefix on the backend
API_PREFIX = os.environ.get("API_PREFIX", "/api").rstrip("/")

LOCAL_BACKEND_URL = "http://127.0.0.1:8000"


def get_env() -> Literal["local", "staging", "production"]:
    """Return the normalized environment name."""
    return ENV


def validate_api_url(url: str, env: str) -> None:
    """
    Validate API base URL according to environment security rules.

    Args:
        url: The API base URL to validate
        env: Current environment ("local", "staging", "production")

    Raises:
        ValueError: If URL violates security constraints for the environment
    """
    if not url:
        raise ValueError("API base URL cannot be empty")

    if env in ("staging", "production"):
        if not url.startswith("https://"):
            raise ValueError(f"Production/staging must use HTTPS. Got: {url}")
        if "127.0.0.1" in url or "localhost" in url:
            raise ValueError(f"Production/staging cannot use localhost URLs. Got: {url}")


def get_api_base_url(env: str = None) -> str:
    """
    Get API base URL (including the /api prefix) with strict priority and validation.

    Priority:
    1. BACKEND_URL environment variable
    2. API_BASE_URL environment variable
    3. Local dev default ONLY if ENV == "local"
    4. Raise error if production/staging with no configured URL

    Returns:
        Validated API base URL with trailing slash removed

    Raises:
        RuntimeError: If production/staging environment has no configured URL
    """
    env = env or ENV

    for var in ("BACKEND_URL", "API_BASE_URL"):
        value = os.environ.get(var, "").strip()
        if value:
            url = value.rstrip("/")
            validate_api_url(url, env)
            return _with_prefix(url)

    if env == "local":
        return _with_prefix(LOCAL_BACKEND_URL)

    raise RuntimeError(
        f"Backend URL not configured for {env.upper()} environment. "
        f"Set BACKEND_URL to the backend service URL. "
        f"Production/staging MUST use HTTPS and cannot fall back to localhost."
    )


def _with_prefix(url: str) -> str:
    if not API_PREFIX or url.endswith(API_PREFIX):
        return url
    return f"{url}{API_PREFIX}"


# Request timeouts (seconds)
REQUEST_TIMEOUT_SECONDS = float(os.environ.get("REQUEST_TIMEOUT_SECONDS", "20"))
REFRESH_TIMEOUT_SECONDS = float(os.environ.get("REFRESH_TIMEOUT_SECONDS", "10"))

# Manual retries offered after a failed report generation
MAX_REPORT_RETRIES = int(os.environ.get("MAX_REPORT_RETRIES", "3"))

# Payment gateway redirect target
APP_ORIGIN = os.environ.get("APP_ORIGIN", "http://localhost:8501").rstrip("/")
PAYMENT_CALLBACK_URL = os.environ.get("PAYMENT_CALLBACK_URL", f"{APP_ORIGIN}/payment/callback")

# Feature flags
ENABLE_DEBUG_UI = IS_DEV
ENABLE_VERBOSE_LOGGING = IS_DEV or IS_STAGING

if ENABLE_VERBOSE_LOGGING:
    print(f"[CONFIG] Environment: {ENV}")
    print(f"[CONFIG] API prefix: {API_PREFIX}")
    print(f"[CONFIG] Report retries: {MAX_REPORT_RETRIES}")
