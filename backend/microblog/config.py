# microblog/config.py
import os
from pydantic import BaseModel
from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


def _env_list(name: str, default: str = "") -> list[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


class Settings(BaseModel):
    # General app settings
    APP_NAME: str = "Microblog API"
    env: str = os.getenv("ENV", "dev")

    # Host & Port settings
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "3000"))

    # CORS origins for frontend
    CORS_ORIGINS: list[str] = _env_list(
        "CORS_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173",
    )

    # Storage: "db" (Tortoise ORM, DATABASE_URL) or "json" (flat files under DATA_DIR)
    store_backend: str = os.getenv("STORE_BACKEND", "db").lower()
    database_url: str = os.getenv("DATABASE_URL", "sqlite://data/microblog.sqlite3")
    # No migration tool is wired in, so tables are created on startup unless disabled
    db_generate_schemas: bool = _env_bool("DB_GENERATE_SCHEMAS", "true")
    data_dir: str = os.getenv("DATA_DIR", "data")

    # Session cookie
    jwt_secret: str = os.getenv("JWT_SECRET", "dev-secret")
    session_expire_minutes: int = int(os.getenv("SESSION_EXPIRE_MINUTES", str(7 * 24 * 60)))
    session_cookie_name: str = os.getenv("SESSION_COOKIE_NAME", "session")
    cookie_secure: bool = _env_bool("COOKIE_SECURE", "false")

    # Password hashing cost (bcrypt log2 rounds)
    bcrypt_rounds: int = int(os.getenv("BCRYPT_ROUNDS", "10"))

    # Posting rules
    char_limit: int = int(os.getenv("CHAR_LIMIT", "500"))
    cooldown_seconds: int = int(os.getenv("COOLDOWN_SECONDS", str(15 * 60)))
    # Authors that bypass the cooldown
    exempt_usernames: list[str] = _env_list("EXEMPT_USERNAMES")

    # Optional post images
    upload_dir: str = os.getenv("UPLOAD_DIR", "uploads")
    max_image_bytes: int = int(os.getenv("MAX_IMAGE_BYTES", str(5 * 1024 * 1024)))


settings = Settings()  # Instantiate configuration
