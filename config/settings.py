from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # App
    APP_NAME: str = "Perp Risk Engine"
    DEBUG: bool = False  # Safe default for production; set DEBUG=True in .env for local dev

    # Oracle guard rails: max confidence interval as bps of price (MARGIN_PRECISION scale)
    ORACLE_MAX_CONFIDENCE_BPS: int = 200

    # Extra maintenance margin (MARGIN_PRECISION scale) required to exit liquidation
    LIQUIDATION_MARGIN_BUFFER_BPS: int = 200


settings = Settings()
