from pathlib import Path
from pydantic_settings import BaseSettings

BASE_DIR = Path(__file__).resolve().parent.parent

class Settings(BaseSettings):
    API_BASE_URL: str = "http://localhost:5454"
    REQUEST_TIMEOUT: float = 15.0
    STORAGE_DB_PATH: str = str(BASE_DIR / "data" / "storefront.db")
    DEFAULT_PAGE_SIZE: int = 12
    FREE_SHIPPING_THRESHOLD: float = 50.0
    SHIPPING_FLAT_RATE: float = 9.99
    TAX_RATE: float = 0.08
    COUPONS: dict[str, float] = {"SAVE10": 0.10}
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
