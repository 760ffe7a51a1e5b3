from dotenv import load_dotenv
from pydantic_settings import BaseSettings

load_dotenv()

class Settings(BaseSettings):
    PROJECT_NAME: str = "FST Auth"
    # Application settings
    PORT: int = 8000
    HOST: str = "127.0.0.1"
    VERSION: str = "1.0.0"
    CORS_ORIGINS: str = "*"

    # SQLAlchemy database URL
    DATABASE_URL: str = "sqlite:///./fst_auth.db"

    # Login configuration
    ENCODE_KEY: str | None = None
    ENCODE_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_SECONDS: int = 7 * 24 * 3600 # 7 days
    NONCE_EXPIRY_SECONDS: int = 300 # 5 minutes
    ADMIN_WALLETS: str = "" # comma-separated wallet addresses

    # Redis settings, challenge store falls back to process memory when unset
    REDIS_HOST: str | None = None
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_MAX_CONNECTIONS: int | None = None
    REDIS_SSL: bool = False
    # Memory store settings
    MEMORY_STORE_MAX_ENTRIES: int = 100_000

    # Debug settings
    DEBUG: bool = False

    class Config:
        env_file = ".env"

    @property
    def admin_wallets(self) -> frozenset[str]:
        """Allow-listed admin addresses, lower-cased for comparison."""
        return frozenset(
            item.strip().lower() for item in self.ADMIN_WALLETS.split(",") if item.strip()
        )

    @property
    def cors_origins(self) -> list[str]:
        return [item.strip() for item in self.CORS_ORIGINS.split(",") if item.strip()]

# Instantiate the settings
settings = Settings()
