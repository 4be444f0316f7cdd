"""Settings and configuration management."""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_CONFIG_FILE = "shipwright.yml"
OVERRIDE_PLUGINS_SUBDIR = Path(".shipwright") / "plugins"


class Settings(BaseSettings):
    """Process-level settings, read from the environment or a .env file."""

    model_config = SettingsConfigDict(
        env_prefix="SHIPWRIGHT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Paths
    working_dir: Path = Field(
        default_factory=Path.cwd, description="Repository being released"
    )
    config_file: Path = Field(
        Path(DEFAULT_CONFIG_FILE),
        description="Release configuration file, relative to working_dir",
    )
    plugins_dir: Optional[Path] = Field(
        None,
        description="User override plugin directory (default: <working_dir>/.shipwright/plugins)",
    )

    # Source control
    git_remote: str = Field("origin", description="Remote that receives tags")
    git_timeout_seconds: int = Field(
        120, description="Timeout for a single git command in seconds"
    )

    # Logging
    log_level: str = Field("INFO", description="Logging level")
    log_format: str = Field("text", description="Log format: 'text' or 'json'")
    sanitize_logs: bool = Field(True, description="Mask tokens in log output")

    @property
    def script_dir(self) -> Path:
        """Directory of the installed engine package."""
        return Path(__file__).resolve().parent.parent

    @property
    def builtin_plugins_dir(self) -> Path:
        return self.script_dir / "plugins" / "builtin"

    @property
    def override_plugins_dir(self) -> Path:
        if self.plugins_dir is None:
            return self.working_dir / OVERRIDE_PLUGINS_SUBDIR
        if self.plugins_dir.is_absolute():
            return self.plugins_dir
        return self.working_dir / self.plugins_dir

    @property
    def config_path(self) -> Path:
        if self.config_file.is_absolute():
            return self.config_file
        return self.working_dir / self.config_file

    @property
    def plugin_search_dirs(self) -> list[Path]:
        """Built-in directory first, user override directory second."""
        return [self.builtin_plugins_dir, self.override_plugins_dir]

    def model_post_init(self, __context) -> None:
        """Normalize the working directory to an absolute path."""
        self.working_dir = self.working_dir.resolve()


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
