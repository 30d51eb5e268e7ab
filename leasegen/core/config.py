## leasegen/core/config.py

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Settings for the application
    """

    model_config = SettingsConfigDict(
        env_file=".env", extra="ignore", case_sensitive=False
    )

    environment: str = "development"
    allowed_cors_urls: str = "*"

    # Logging
    log_level: str = "INFO"
    log_json: bool = False
    log_file: Optional[str] = None

    # Filesystem
    templates_dir: str = "templates"
    temp_dir: Optional[str] = None

    # Word -> PDF conversion
    soffice_path: str = "soffice"
    conversion_timeout: int = 30

    # Object storage
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: Optional[str] = None
    s3_bucket_name: Optional[str] = None
    s3_endpoint_url: Optional[str] = None
    s3_force_path_style: bool = False
    storage_prefix: str = "leases"
    signed_url_expiration: int = 3600

    @property
    def is_production(self) -> bool:
        """
        Whether stack traces and error details must be hidden
        """
        return self.environment.lower() == "production"

    @property
    def cors_origins(self) -> list:
        """
        Allowed CORS origins as a list
        """
        return [url.strip() for url in self.allowed_cors_urls.split(",") if url.strip()]


@lru_cache()
def get_settings() -> Settings:
    """
    Build the settings once per process. Injected with Depends(get_settings).
    """
    return Settings()
