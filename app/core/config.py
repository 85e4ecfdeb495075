from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    env: str = "development"
    log_level: str = "INFO"

    # The Odds API
    odds_api_key: str | None = None
    odds_base_url: str = "https://api.the-odds-api.com/v4/sports"
    odds_sport: str = "motorsport_f1"
    odds_regions: str = "eu"
    odds_markets: str = "h2h,winner"
    odds_requests_per_minute: int = 10
    odds_cache_ttl: float = 5 * 60
    odds_timeout: float = 20

    # Cache lifetimes in seconds, per category
    race_data_ttl: float = 60 * 60
    practice_data_ttl: float = 30 * 60
    historical_data_ttl: float = 24 * 60 * 60
    predictions_ttl: float = 15 * 60

    estimators: str = "placeholder"  # placeholder | neutral
    estimator_seed: int | None = None

    model_config = SettingsConfigDict(env_file=".env", env_prefix="", case_sensitive=False)

    def cache_expirations(self) -> dict:
        return {
            "race_data": self.race_data_ttl,
            "practice_data": self.practice_data_ttl,
            "historical_data": self.historical_data_ttl,
            "predictions": self.predictions_ttl,
        }

settings = Settings()
