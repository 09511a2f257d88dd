"""
Application Configuration using Pydantic Settings

Loads process-wide defaults from environment variables (or a local .env file).
Command-line flags override the run-related values; everything else is only
configurable here.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # ========================================================================
    # Run Defaults (overridable from the command line)
    # ========================================================================
    DEFAULT_ENDPOINT: str = "http://localhost:9047"
    DEFAULT_USERNAME: str = ""
    DEFAULT_PASSWORD: str = ""
    DEFAULT_MAX_QUERIES_IN_FLIGHT: int = 32
    DEFAULT_DURATION_SECONDS: int = 600
    # Per-query timeout. Only the HTTP job protocol enforces it; the driver
    # protocol relies on the connection's own network timeouts.
    DEFAULT_QUERY_TIMEOUT_SECONDS: int = 3600

    # ========================================================================
    # Scheduling
    # ========================================================================
    REPORT_INTERVAL_SECONDS: float = 5.0
    MONITOR_INTERVAL_SECONDS: float = 5.0
    # How long the monitor waits for queued work to drain before forcing.
    SHUTDOWN_GRACE_SECONDS: float = 5.0

    # Worker queue sizing, as multiples of max-queries-in-flight.
    #
    # The hard capacity is never expected to be reached: the dispatcher pauses
    # once depth exceeds the high mark and resumes below the low mark.
    QUEUE_CAPACITY_FACTOR: int = 1000
    BACKPRESSURE_HIGH_FACTOR: int = 10
    BACKPRESSURE_LOW_FACTOR: int = 5
    THROTTLE_SLEEP_SECONDS: float = 0.1
    # Sleep between retries once a sequential run has no more indexes to hand out.
    EXHAUSTED_BACKOFF_SECONDS: float = 1.0

    # ========================================================================
    # HTTP Job Protocol Settings
    # ========================================================================
    HTTP_POLL_INTERVAL_SECONDS: float = 0.5
    HTTP_REQUEST_TIMEOUT_SECONDS: float = 30.0

    # ========================================================================
    # Driver Protocol Settings (Snowflake connector)
    # ========================================================================
    SNOWFLAKE_WAREHOUSE: str = ""
    SNOWFLAKE_ROLE: str = ""
    SNOWFLAKE_CONNECT_LOGIN_TIMEOUT: int = 15
    SNOWFLAKE_CONNECT_NETWORK_TIMEOUT: int = 300
    SNOWFLAKE_QUERY_TAG: str = "sqlstress"

    # Optional key-pair authentication
    SNOWFLAKE_PRIVATE_KEY_PATH: str = ""
    SNOWFLAKE_PRIVATE_KEY_PASSPHRASE: str = ""

    # ========================================================================
    # Logging Settings
    # ========================================================================
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


# Create global settings instance
settings = Settings()
