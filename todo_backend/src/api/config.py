import os
from typing import List


def _required_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise RuntimeError(
            f"Missing required environment variable '{name}'. "
            "Set it in the shell or the container .env before starting the API."
        )
    return value


# PUBLIC_INTERFACE
def mongodb_uri() -> str:
    """Connection string for the document store."""
    return os.getenv("MONGODB_URI", "mongodb://localhost:27017")


# PUBLIC_INTERFACE
def mongodb_db() -> str:
    """Database name holding the todos and users collections."""
    return os.getenv("MONGODB_DB", "TodoApp")


# PUBLIC_INTERFACE
def jwt_secret() -> str:
    # Required for security; do not default.
    return _required_env("JWT_SECRET")


# PUBLIC_INTERFACE
def jwt_algorithm() -> str:
    return os.getenv("JWT_ALGORITHM", "HS256")


# PUBLIC_INTERFACE
def jwt_exp_minutes() -> int:
    return int(os.getenv("JWT_EXPIRES_MINUTES", "10080"))  # default: 7 days


# PUBLIC_INTERFACE
def port() -> int:
    return int(os.getenv("PORT", "3000"))


# PUBLIC_INTERFACE
def log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()


# PUBLIC_INTERFACE
def cors_allow_origins() -> List[str]:
    """Allowed CORS origins. Defaults to all; restrict via CORS_ALLOW_ORIGINS (comma separated)."""
    env_val = os.getenv("CORS_ALLOW_ORIGINS")
    if not env_val:
        return ["*"]
    return [o.strip() for o in env_val.split(",") if o.strip()]
