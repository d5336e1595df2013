from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # --- App ---
    PROJECT_NAME: str = "EpiCircle_Pickups"

    # --- Store ---
    # No URL means the RAM store is used (single process, lost on restart)
    REDIS_URL: str | None = None
    REDIS_CONNECT_TIMEOUT: float = 1.0  # Fail fast if Redis is down
    KEY_PREFIX: str = ""

    # --- Auth ---
    # Demo build: every phone number verifies with this code
    DEMO_OTP: str = "123456"

    # --- Scheduling / Misc ---
    TIMEZONE: str = "Asia/Kolkata"
    LOG_LEVEL: str = "INFO"

    # --- Configuration ---
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"  # Ignore unrelated variables in .env instead of crashing
    )

settings = Settings()
