"""
Application configuration

Settings are read from environment variables. A `.env` file in the working
directory is loaded first, so local development does not need exported
variables.
"""
import os
import sys
from dataclasses import dataclass, field

from dotenv import load_dotenv
from loguru import logger

load_dotenv()


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


@dataclass
class Settings:
    database_url: str = field(default_factory=lambda: os.getenv("DATABASE_URL", "mongodb://localhost:27017"))
    database_name: str = field(default_factory=lambda: os.getenv("DATABASE_NAME", "avios"))
    port: int = field(default_factory=lambda: _env_int("PORT", 5000))
    environment: str = field(default_factory=lambda: os.getenv("ENVIRONMENT", "development"))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    max_body_bytes: int = field(default_factory=lambda: _env_int("MAX_BODY_BYTES", 20 * 1024))
    gzip_minimum_size: int = field(default_factory=lambda: _env_int("GZIP_MINIMUM_SIZE", 1000))

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


def setup_logging(level: str = "INFO") -> None:
    """Replace loguru's default sink with a single formatted stderr sink."""
    logger.remove()
    logger.add(
        sys.stderr,
        colorize=True,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | <level>{message}</level>",
        level=level.upper(),
    )


settings = Settings()
