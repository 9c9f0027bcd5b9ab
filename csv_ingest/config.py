# ==============================================
# Service Configuration
# ==============================================
#
# PURPOSE:
#   One place that reads MYSQL_*, UPLOAD_*, API_* and STORE_BACKEND
#   from the environment (or a .env next to the package) and hands
#   typed settings to the store, the API and the CLI.
#
# CLASSES:
# --------
# - MySQLConfig (dataclass)
#     host: str          (default "localhost")
#     port: int          (default 3306)
#     user: str          (default "root")
#     password: str      (default "")
#     database: str      (default "csv_upload_db")
#
# - UploadConfig (dataclass)
#     upload_dir: str             (default "uploads/")
#     max_upload_bytes: int       (default 10 MiB)
#     allowed_extensions: tuple   (default (".csv",))
#
# - ServerConfig (dataclass)
#     host: str                   (default "0.0.0.0")
#     port: int                   (default 3000)
#     cors_allowed_origins: list  (default ["*"])
#
# - AppConfig (dataclass)
#     mysql: MySQLConfig
#     upload: UploadConfig
#     server: ServerConfig
#     store_backend: str          ("mysql" | "memory", default "mysql")
#     api_url: str                (default "http://127.0.0.1:3000")
#
# FUNCTION:
# ---------
# - get_config() -> AppConfig
#     python-dotenv fills os.environ from .env, then every section
#     is built and validated. Cached after the first call.
#
# - reset_config() -> None
#     Drop the singleton so the next get_config() re-reads the environment.
#
# - load_env_file() -> None
#     python-dotenv load of ENV_FILE; shared with logger.py.
#
# USAGE:
# ------
#   from csv_ingest.config import get_config
#   store = create_store(get_config())
#   limit = get_config().upload.max_upload_bytes
#
# ==============================================

import os
from dataclasses import dataclass, field
from typing import List, Optional, Tuple
from pathlib import Path

from dotenv import load_dotenv

from csv_ingest.errors import ConfigError


STORE_BACKENDS = ("mysql", "memory")

# .env in the project root
ENV_FILE = Path(__file__).parent.parent / ".env"


@dataclass
class MySQLConfig:
    """MySQL database configuration."""
    host: str = "localhost"
    port: int = 3306
    user: str = "root"
    password: str = ""
    database: str = "csv_upload_db"


@dataclass
class UploadConfig:
    """Limits and location for incoming CSV files."""
    upload_dir: str = "uploads/"
    max_upload_bytes: int = 10 * 1024 * 1024
    allowed_extensions: Tuple[str, ...] = (".csv",)


@dataclass
class ServerConfig:
    """HTTP server configuration."""
    host: str = "0.0.0.0"
    port: int = 3000
    cors_allowed_origins: List[str] = field(default_factory=lambda: ["*"])


@dataclass
class AppConfig:
    """Main application configuration."""
    mysql: MySQLConfig
    upload: UploadConfig
    server: ServerConfig
    store_backend: str = "mysql"
    api_url: str = "http://127.0.0.1:3000"


# Singleton instance
_config_instance: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """
    Load configuration from environment variables / .env file.
    Returns the same singleton instance on repeated calls.

    Returns:
        AppConfig: Application configuration

    Raises:
        ConfigError: If STORE_BACKEND or a numeric setting is invalid
    """
    global _config_instance

    if _config_instance is not None:
        return _config_instance

    load_env_file()

    mysql_config = MySQLConfig(
        host=os.getenv("MYSQL_HOST", "localhost"),
        port=_int_env("MYSQL_PORT", 3306),
        user=os.getenv("MYSQL_USER", "root"),
        password=os.getenv("MYSQL_PASSWORD", ""),
        database=os.getenv("MYSQL_DATABASE", "csv_upload_db")
    )

    extensions = os.getenv("ALLOWED_EXTENSIONS", ".csv")
    upload_config = UploadConfig(
        upload_dir=os.getenv("UPLOAD_DIR", "uploads/"),
        max_upload_bytes=_int_env("MAX_UPLOAD_BYTES", 10 * 1024 * 1024),
        allowed_extensions=tuple(
            ext.strip().lower() for ext in extensions.split(",") if ext.strip()
        )
    )

    server_config = ServerConfig(
        host=os.getenv("API_HOST", "0.0.0.0"),
        port=_int_env("API_PORT", 3000),
        cors_allowed_origins=os.getenv("CORS_ALLOWED_ORIGINS", "*").split(",")
    )

    store_backend = os.getenv("STORE_BACKEND", "mysql").strip().lower()
    if store_backend not in STORE_BACKENDS:
        raise ConfigError(
            f"STORE_BACKEND must be one of {', '.join(STORE_BACKENDS)}, got '{store_backend}'"
        )

    _config_instance = AppConfig(
        mysql=mysql_config,
        upload=upload_config,
        server=server_config,
        store_backend=store_backend,
        api_url=os.getenv("API_URL", "http://127.0.0.1:3000")
    )

    return _config_instance


def load_env_file() -> None:
    """
    Copy ENV_FILE into os.environ. Variables already set win.

    Called by get_config() and before logging is configured, so
    LOG_LEVEL and CSV_INGEST_LOG_FILE can live in .env too.
    """
    load_dotenv(dotenv_path=ENV_FILE)


def reset_config() -> None:
    """Forget the cached configuration (used by tests)."""
    global _config_instance
    _config_instance = None


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got '{raw}'") from None
