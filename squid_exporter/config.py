from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import computed_field

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_ignore_empty=True, extra="ignore")

    # Application
    app_env: str = "development"
    app_port: int = 9301
    log_level: str = "INFO"

    # Squid cache manager
    squid_hostname: str = "localhost"
    squid_port: int = 3128
    squid_timeout: float = 10.0  # seconds; a stalled proxy must not block a scrape forever

    # Observability
    otel_exporter: str = "none"
    otel_service_name: str = "squid-exporter"
    otel_exporter_otlp_endpoint: str = "http://localhost:4317"

    @computed_field
    @property
    def mem_report_url(self) -> str:
        """URL of the cache manager ``mem`` report for the configured proxy."""
        return f"http://{self.squid_hostname}:{self.squid_port}/squid-internal-mgr/mem"

settings = Settings()
