import os
from pathlib import Path
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from dotenv import load_dotenv
from pydantic import ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from devcamper.errors import ConfigurationError

DEFAULT_ENV_FILE = Path("config") / "config.env"


class Settings(BaseSettings):
    node_env: str | None = None
    host: str = "0.0.0.0"
    port: int = 5000

    database_url: str

    @model_validator(mode="before")
    @classmethod
    def _normalize_database_url(cls, data: dict) -> dict:
        # Hosted Postgres hands out postgres:// or postgresql:// URLs;
        # SQLAlchemy + asyncpg needs the postgresql+asyncpg:// driver prefix.
        if not isinstance(data, dict) or not isinstance(data.get("database_url"), str):
            return data
        url = data["database_url"]
        if url.startswith("postgres://"):
            url = "postgresql+asyncpg://" + url[len("postgres://"):]
        elif url.startswith("postgresql://"):
            url = "postgresql+asyncpg://" + url[len("postgresql://"):]

        # asyncpg uses "ssl" not libpq's "sslmode".
        if url.startswith("postgresql+asyncpg://"):
            parsed = urlparse(url)
            if parsed.query:
                params = parse_qs(parsed.query)
                sslmode = params.pop("sslmode", [None])[0]
                if sslmode and "ssl" not in params:
                    params["ssl"] = [sslmode]
                url = urlunparse(parsed._replace(query=urlencode(params, doseq=True)))

        return {**data, "database_url": url}

    rate_limit_window_seconds: int = 10 * 60
    rate_limit_max_requests: int = 100
    trusted_proxies: tuple[str, ...] = ()

    body_limit_bytes: int = 100 * 1024
    hpp_whitelist: tuple[str, ...] = ()

    public_dir: Path = Path("public")
    file_upload_path: Path = Path("public") / "uploads"
    max_file_upload: int = 1_000_000

    model_config = SettingsConfigDict(frozen=True, extra="ignore")

    @property
    def is_development(self) -> bool:
        return self.node_env == "development"


def load_settings(env_file: str | os.PathLike[str] | None = DEFAULT_ENV_FILE) -> Settings:
    """Merge ``env_file`` into the process environment and build the settings snapshot.

    Variables already present in the environment take precedence over the file.
    """
    if env_file is not None and Path(env_file).is_file():
        load_dotenv(env_file, override=False)
    try:
        return Settings()
    except ValidationError as e:
        missing = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
        raise ConfigurationError(f"Invalid or missing settings: {', '.join(missing)}") from e
