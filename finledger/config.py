"""Configuration management for finledger."""

import logging
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Development mode
    dev_mode: bool = True

    # Data directory
    data_dir: Path = Path.home() / ".finledger"

    # Folder holding the statement sub-folders; defaults to <data_dir>/uploads
    uploads_dir: Path | None = None
    statement_folders: list[str] = ["bank-statements", "payslips"]

    # Dispatcher limits
    max_file_size_bytes: int = 50 * 1024 * 1024
    max_attempts: int = 3
    retry_backoff_ms: int = 1000
    retry_budget_ms: int = 3000

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="FINLEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def db_path(self) -> Path:
        """Get the SQLite database path."""
        suffix = "dev" if self.dev_mode else "prod"
        return self.data_dir / f"finledger_{suffix}.db"

    @property
    def uploads_path(self) -> Path:
        """Get the uploads directory path."""
        return self.uploads_dir or self.data_dir / "uploads"

    @property
    def backup_dir(self) -> Path:
        """Get the directory used for migration backups and reports."""
        return self.data_dir / "migration_backup"

    def ensure_directories(self) -> None:
        """Create necessary directories if they don't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.uploads_path.mkdir(parents=True, exist_ok=True)
        for folder in self.statement_folders:
            (self.uploads_path / folder).mkdir(parents=True, exist_ok=True)

    def log_config(self) -> None:
        """Log current configuration."""
        logger.info("=" * 60)
        logger.info("CONFIGURATION LOADED")
        logger.info(f"Dev Mode:            {self.dev_mode}")
        logger.info(f"Data Directory:      {self.data_dir}")
        logger.info(f"Database:            {self.db_path}")
        logger.info(f"Uploads:             {self.uploads_path}")
        logger.info(f"Statement Folders:   {', '.join(self.statement_folders)}")
        logger.info(f"Backups:             {self.backup_dir}")
        logger.info(f"Max File Size:       {self.max_file_size_bytes} bytes")
        logger.info(
            f"Retry Policy:        {self.max_attempts} attempts, "
            f"{self.retry_backoff_ms}ms backoff step, {self.retry_budget_ms}ms budget"
        )
        logger.info("=" * 60)


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for command line use."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# Global settings instance
settings = Settings()
