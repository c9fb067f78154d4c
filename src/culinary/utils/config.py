"""Configuration management for Culinary Time Machine.

Loads environment variables from system environment and .env file.
Priority order: system environment > .env file > hardcoded defaults
"""

import os

from dotenv import load_dotenv


# Load .env file (if exists, silently continues if missing)
load_dotenv()


class Config:
    """Application configuration loaded from environment variables."""

    def __init__(self) -> None:
        """Initialize configuration from environment variables."""
        # Only required when a live Gemini client is built (see GenerationClient.from_config)
        self.GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")
        # Recipe Model: must support structured JSON output (response_schema)
        self.RECIPE_MODEL: str = os.getenv("RECIPE_MODEL", "gemini-2.5-flash")
        # Image Model: must support mixed TEXT + IMAGE response modalities
        self.IMAGE_MODEL: str = os.getenv("IMAGE_MODEL", "gemini-2.0-flash-preview-image-generation")

        # Retry Configuration - applied to every Gemini call (recipe and image)
        # MAX_ATTEMPTS: Total attempts per call, including the first one. Default: 5
        self.MAX_ATTEMPTS: int = int(os.getenv("MAX_ATTEMPTS", "5"))
        # INITIAL_RETRY_DELAY: Seconds before the first retry, doubled after each failure
        self.INITIAL_RETRY_DELAY: float = float(os.getenv("INITIAL_RETRY_DELAY", "1.0"))
        # MAX_RETRY_DELAY: Upper bound for a single backoff delay in seconds
        self.MAX_RETRY_DELAY: float = float(os.getenv("MAX_RETRY_DELAY", "30.0"))

        # Archive Configuration
        # ARCHIVE_FILE: JSON file holding every saved recipe
        self.ARCHIVE_FILE: str = os.getenv("ARCHIVE_FILE", "culinary_recipes.json")
        # ARCHIVE_KEY: Name of the record inside the archive file
        self.ARCHIVE_KEY: str = os.getenv("ARCHIVE_KEY", "culinaryRecipes")

        # STATUS_DURATION: Seconds a status message stays visible. Default: 3.0
        self.STATUS_DURATION: float = float(os.getenv("STATUS_DURATION", "3.0"))

    def validate(self) -> None:
        """Validate configuration values.

        Raises:
            ValueError: If a value is out of its allowed range.
        """
        if self.MAX_ATTEMPTS < 1:
            raise ValueError(
                f"MAX_ATTEMPTS must be at least 1, got: {self.MAX_ATTEMPTS}"
            )
        if self.INITIAL_RETRY_DELAY < 0:
            raise ValueError(
                f"INITIAL_RETRY_DELAY must not be negative, got: {self.INITIAL_RETRY_DELAY}"
            )
        if self.MAX_RETRY_DELAY < self.INITIAL_RETRY_DELAY:
            raise ValueError(
                f"MAX_RETRY_DELAY must be at least INITIAL_RETRY_DELAY "
                f"({self.INITIAL_RETRY_DELAY}), got: {self.MAX_RETRY_DELAY}"
            )
        if self.STATUS_DURATION <= 0:
            raise ValueError(
                f"STATUS_DURATION must be positive, got: {self.STATUS_DURATION}"
            )
        if not self.ARCHIVE_FILE:
            raise ValueError("ARCHIVE_FILE must not be empty")
        if not self.ARCHIVE_KEY:
            raise ValueError("ARCHIVE_KEY must not be empty")


# Create module-level config instance and validate immediately
config = Config()
config.validate()
