"""Runtime configuration via pydantic-settings (.env + PANFORGE_* env vars)."""

import os
import sys
from pathlib import Path

from loguru import logger
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_data_dir() -> Path:
    """APPDATA/panforge when APPDATA is set, otherwise ~/.panforge."""
    app_data = os.environ.get("APPDATA")
    if app_data:
        return Path(app_data) / "panforge"
    return Path.home() / ".panforge"


class PanforgeSettings(BaseSettings):
    """All runtime options with layered resolution:
    .env file < PANFORGE_* environment variables < constructor kwargs.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PANFORGE_",
        extra="ignore",
    )

    # -- Targets / output --
    targets: list[str] = []
    output: str = ""

    # -- Behavior --
    force: bool = False
    dry_run: bool = False
    verbose: bool = False
    quiet: bool = False
    all: bool = False
    watch: bool = False
    concurrency: int = 0  # 0 = auto (available CPUs)

    # -- Logging --
    log_file: Path | None = None
    log_level: str = "INFO"

    # -- Default configuration lookup --
    default_config: str = "default"
    data_dir: Path | None = None

    # -- External tool --
    pandoc_bin: str = "pandoc"

    @property
    def default_config_dir(self) -> Path:
        """Directory searched for named default configs (``<name>.yaml``)."""
        return self.data_dir or _default_data_dir()

    @property
    def effective_log_level(self) -> str:
        if self.verbose:
            return "DEBUG"
        if self.quiet:
            return "ERROR"
        return self.log_level.upper()

    def setup_logging(self) -> None:
        """Configure loguru for the console."""
        logger.remove()  # Remove default stderr handler

        log_format = (
            "{time:YYYY-MM-DDTHH:mm:ssZ} | {level:<8} | "
            "{extra[stage]:<10} | {message}"
        )

        def _default_extra(record):
            record["extra"].setdefault("stage", "")
            return True

        logger.add(
            sys.stderr,
            format=log_format,
            level=self.effective_log_level,
            filter=_default_extra,
        )
