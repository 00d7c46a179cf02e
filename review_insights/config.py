from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Analysis
    anthropic_api_key: str = ""
    model_name: str = "claude-haiku-4-5-20251001"
    model_max_tokens: int = 1024
    model_timeout: float = 60.0

    # Photo enrichment
    google_places_api_key: str = ""
    places_timeout: float = 10.0
    photo_max_width: int = 800

    # Acquisition
    scraper_headless: bool = True
    navigation_timeout: int = 120
    review_section_timeout: int = 60
    scroll_count: int = 3
    scroll_settle_seconds: float = 5.0
    max_reviews: int = 20

    # Browser pool
    browser_pool_size: int = 2
    browser_pool_acquire_timeout: float = 30.0
    browser_max_uses: int = 10

    log_level: str = "INFO"


settings = Settings()
