from pydantic_settings import BaseSettings
from pydantic import Field

class Settings(BaseSettings):
    app_name: str = Field("Inkwell Blog API", alias="APP_NAME")
    app_env: str = Field("dev", alias="APP_ENV")
    secret_key: str = Field("dev-only-secret-change-me", alias="SECRET_KEY")
    access_token_expire_minutes: int = Field(60 * 24, alias="ACCESS_TOKEN_EXPIRE_MINUTES")
    database_url: str = Field("sqlite:///./blog.db", alias="DATABASE_URL")

    password_hash_rounds: int = Field(10, alias="PASSWORD_HASH_ROUNDS")
    session_cookie_name: str = Field("session-token", alias="SESSION_COOKIE_NAME")

    rate_limit_window_seconds: int = Field(60, alias="RATE_LIMIT_WINDOW_SECONDS")
    rate_limit_max_calls: int = Field(60, alias="RATE_LIMIT_MAX_CALLS")

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_format: str = Field("console", alias="LOG_FORMAT")
    cors_origins: list[str] = Field(default_factory=lambda: ["*"], alias="CORS_ORIGINS")

    class Config:
        env_file = ".env"
        extra = "ignore"

settings = Settings()
