import os
import sys
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_data_dir() -> Path:
    if env := os.environ.get("LABRINTH_DATA_DIR"):
        return Path(env)
    if sys.platform == "win32":
        base = Path(os.environ.get("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
    else:
        base = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))
    return base / "labrinth"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="LABRINTH_",
        extra="ignore",
    )

    data_dir: Path = Path("")
    database_url: str = ""
    search_url: str = ""
    search_api_key: str = ""
    search_index: str = "projects"
    search_timeout: float = 10.0
    search_retry_interval: float = 60.0
    legacy_side_default: str = "unsupported"
    default_game: str = "minecraft-java"
    seed_defaults: bool = True
    host: str = "127.0.0.1"
    port: int = 8000

    @model_validator(mode="after")
    def _resolve_data_paths(self) -> "Settings":
        if self.data_dir == Path(""):
            self.data_dir = _default_data_dir()
        if not self.database_url:
            self.database_url = f"sqlite:///{self.data_dir / 'labrinth.db'}"
        return self


settings = Settings()
