"""Configuration management for the macro reaction engine."""
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from src.shared.exceptions import ConfigurationError

# Load environment variables
load_dotenv()


class Config:
    """Application configuration."""

    # Project paths
    ROOT_DIR = Path(__file__).parent.parent.parent
    DATA_DIR = ROOT_DIR / "data"
    LOGS_DIR = ROOT_DIR / "logs"

    # Database
    DB_HOST: str = os.getenv("DB_HOST", "localhost")
    DB_PORT: int = int(os.getenv("DB_PORT", "5432"))
    DB_NAME: str = os.getenv("DB_NAME", "macro_reactions")
    DB_USER: str = os.getenv("DB_USER", "postgres")
    DB_PASSWORD: str = os.getenv("DB_PASSWORD", "")
    DATABASE_URL: Optional[str] = os.getenv("DATABASE_URL")

    # API Keys
    FRED_API_KEY: Optional[str] = os.getenv("FRED_API_KEY")
    COINGLASS_API_KEY: Optional[str] = os.getenv("COINGLASS_API_KEY")

    # Market data
    MARKET_SYMBOL: str = os.getenv("MARKET_SYMBOL", "BTCUSDT")
    DERIVATIVES_SYMBOL: str = os.getenv("DERIVATIVES_SYMBOL", "BTC")
    BINANCE_FUTURES_URL: str = os.getenv("BINANCE_FUTURES_URL", "https://fapi.binance.com")
    COINGLASS_URL: str = os.getenv("COINGLASS_URL", "https://open-api-v3.coinglass.com")

    # Request pacing
    REQUEST_TIMEOUT: int = int(os.getenv("REQUEST_TIMEOUT", "30"))
    MARKET_REQUEST_DELAY: float = float(os.getenv("MARKET_REQUEST_DELAY", "0.3"))
    OCCURRENCE_DELAY: float = float(os.getenv("OCCURRENCE_DELAY", "2.0"))
    FRED_LOOKBACK: int = int(os.getenv("FRED_LOOKBACK", "48"))

    @classmethod
    def validate(cls) -> None:
        """Validate configuration required by the statistics sync."""
        if not cls.FRED_API_KEY:
            raise ConfigurationError("FRED_API_KEY not set in environment")

    @classmethod
    def validate_market(cls) -> None:
        """Validate configuration required by the reaction backfill."""
        if not cls.COINGLASS_API_KEY:
            raise ConfigurationError("COINGLASS_API_KEY not set in environment")

    @property
    def database_url(self) -> str:
        """Construct database URL."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"


config = Config()
