from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Settings class to retrieve environment variables.
    """

    DATABASE_URL: str = "sqlite+aiosqlite:///./storefront.db"
    AUTO_CREATE_TABLES: bool = True
    LOG_LEVEL: str = "INFO"

    STORE_NAME: str = "Storefront"
    STORE_CURRENCY: str = "INR"

    # shipping is free strictly above the threshold
    FREE_SHIPPING_THRESHOLD: float = 100.0
    FLAT_SHIPPING_FEE: float = 15.0

    COUPON_CODE_LENGTH: int = 8

    model_config = SettingsConfigDict(
        env_file='.env',
        extra='ignore',
    )


Config = Settings()
