import os

from dotenv import load_dotenv


load_dotenv()



def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./alumni_connect.db")
SQL_ECHO = _get_bool(os.getenv("SQL_ECHO"), default=False)

CORS_ORIGINS = _get_list(os.getenv("CORS_ORIGINS"), default=["http://localhost:3000"])

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", str(7 * 24 * 60)))

BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))
MIN_PRODUCTION_BCRYPT_ROUNDS = 10

# Identifier collisions are retried with a fresh sequence up to this many times.
ID_ISSUE_MAX_ATTEMPTS = int(os.getenv("ID_ISSUE_MAX_ATTEMPTS", "5"))

MIN_PASSWORD_LENGTH = 6
MIN_GRADUATION_YEAR = 1900
GRADUATION_YEAR_LOOKAHEAD = 10

def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if APP_ENV.lower() == "production" and BCRYPT_ROUNDS < MIN_PRODUCTION_BCRYPT_ROUNDS:
        raise RuntimeError(f"BCRYPT_ROUNDS must be at least {MIN_PRODUCTION_BCRYPT_ROUNDS} in production.")
    if ID_ISSUE_MAX_ATTEMPTS < 1:
        raise RuntimeError("ID_ISSUE_MAX_ATTEMPTS must be at least 1.")
