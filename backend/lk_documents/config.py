from pathlib import Path

from pydantic import BaseModel, NonNegativeInt, PositiveInt
from pydantic_settings import BaseSettings

from lk_documents.services.limiter import TimeUnit


class LimiterSettings(BaseModel):
    request_limit: PositiveInt = 100  # permits per time_unit
    warmup_period: NonNegativeInt = 0  # in time_unit
    time_unit: TimeUnit = TimeUnit.SECONDS


class RetrySettings(BaseModel):
    max_attempts: PositiveInt = 10
    backoff_ms: NonNegativeInt = 5


class ConcurrencySettings(BaseModel):
    limiter: LimiterSettings = LimiterSettings()
    retry: RetrySettings = RetrySettings()


class Settings(BaseSettings):
    db_path: Path = Path("lk_documents.sqlite")
    api_prefix: str = "/api/v3"
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"
    log_format: str = "plain"
    concurrency: ConcurrencySettings = ConcurrencySettings()

    model_config = {"env_prefix": "LK_", "env_nested_delimiter": "__"}


settings = Settings()
