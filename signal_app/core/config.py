from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "postgresql://signal:signal@db:5432/signal"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Comma-separated allowed origins, or "*" to allow all.
    # Example: "https://myapp.com,https://api.myapp.com"
    CORS_ORIGINS: str = "*"

    # IANA zone used for "today" (same-date reopen) and peak-hour buckets.
    TIMEZONE: str = "UTC"

    # Timer session snapshot, rewritten on every state change.
    TIMER_STATE_PATH: str = "./data/timer_state.json"
    TIMER_TICK_SECONDS: float = 0.1
    TIMER_PLACEHOLDER_CONTENT: str = "Timer session in progress"

    # Size of each window in the recent-vs-prior trend comparison.
    TREND_WINDOW_DAYS: int = 7

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
