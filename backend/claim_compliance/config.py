from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    environment: str = "development"
    log_level: str = "INFO"
    json_logs: bool = False

    # Rule catalog
    catalog_path: str | None = None
    catalog_version: str | None = None

    # Batch validation
    batch_max_concurrency: int = 8

    # Monitoring
    default_time_range: str = "30d"

    model_config = {"env_file": ".env", "extra": "ignore"}

    @model_validator(mode="after")
    def _validate_settings(self):
        if self.batch_max_concurrency < 1:
            raise ValueError("BATCH_MAX_CONCURRENCY must be at least 1")
        if self.environment == "production" and not self.catalog_path:
            raise ValueError(
                "Production requires CATALOG_PATH pointing at a versioned rule catalog"
            )
        return self


settings = Settings()
