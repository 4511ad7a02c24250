from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "SubSense"

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # Snooze length used when a request gives neither `until` nor `days`
    DEFAULT_SNOOZE_DAYS: int = 7
    UPCOMING_RENEWAL_DAYS: int = 14

    model_config = {"env_file": ".env", "env_prefix": "SUBSENSE_", "extra": "ignore"}


settings = Settings()
