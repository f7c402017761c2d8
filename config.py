from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    RPC_URL: str = "http://127.0.0.1:8545"
    MULTICALL3_ADDRESS: str = "0xcA11bde05977b3631167028862bE2a173976CA11"
    DEFAULT_GAS: int = Field(default=50000, gt=0)
    REQUEST_TIMEOUT: float = Field(default=30, gt=0)
    LOG_LEVEL: str = "INFO"


settings = Settings()
