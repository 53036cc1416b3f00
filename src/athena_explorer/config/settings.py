from __future__ import annotations
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional
import yaml
from dotenv import load_dotenv

from athena_explorer.exceptions.errors import ConfigurationError

load_dotenv()

RESULT_STRATEGIES = ("paged", "bulk")
CONNECTION_METHODS = ("keys", "profile")


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key, default)


def _env_float(key: str, default: float) -> float:
    val = os.environ.get(key)
    if val is None or not val.strip():
        return float(default)
    try:
        return float(val)
    except ValueError as e:
        raise ConfigurationError(f"{key} must be a number, got {val!r}") from e


def _timeout_or_none(val: Any) -> Optional[float]:
    # 0 (or less) disables the execution timeout
    if val is None:
        return None
    seconds = float(val)
    return seconds if seconds > 0 else None


def _env_optional_float(key: str, default: Optional[float]) -> Optional[float]:
    val = os.environ.get(key)
    if val is None:
        return default
    if not val.strip() or val.strip().lower() in ("none", "off"):
        return None
    try:
        return _timeout_or_none(val)
    except ValueError as e:
        raise ConfigurationError(f"{key} must be a number, got {val!r}") from e


@dataclass(frozen=True)
class Settings:
    env: str = "dev"
    log_level: str = "INFO"
    log_file: str = ""

    # ------------------------------------------------------------------
    # Connection (credentials + region); frozen once the client is opened
    # ------------------------------------------------------------------
    aws_region: str = "us-east-1"
    connection_method: str = "profile"
    aws_access_key_id: str = ""
    aws_secret_access_key: str = ""
    aws_session_token: str = ""
    aws_profile: str = ""

    # ------------------------------------------------------------------
    # Athena execution
    # ------------------------------------------------------------------
    athena_workgroup: str = "primary"
    athena_output_location: str = ""
    athena_catalog: str = "AwsDataCatalog"

    # Polling: fixed interval unless poll_backoff > 1, capped at max_poll_interval
    poll_interval: float = 0.2
    poll_backoff: float = 1.0
    max_poll_interval: float = 5.0
    execution_timeout: Optional[float] = None

    # Results: "paged" (GetQueryResults) or "bulk" (CSV object in S3)
    result_strategy: str = "paged"
    page_size: int = 1000
    page_delay: float = 0.0
    csv_delimiter: str = ","

    def validate(self) -> "Settings":
        if self.result_strategy not in RESULT_STRATEGIES:
            raise ConfigurationError(
                f"ATHENA_RESULT_STRATEGY must be one of {RESULT_STRATEGIES}, got {self.result_strategy!r}"
            )
        if self.connection_method not in CONNECTION_METHODS:
            raise ConfigurationError(
                f"ATHENA_CONNECTION_METHOD must be one of {CONNECTION_METHODS}, got {self.connection_method!r}"
            )
        if self.connection_method == "keys" and not (self.aws_access_key_id and self.aws_secret_access_key):
            raise ConfigurationError(
                "AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY are required when ATHENA_CONNECTION_METHOD=keys"
            )
        if self.poll_interval <= 0:
            raise ConfigurationError("ATHENA_POLL_INTERVAL must be positive")
        if self.poll_backoff < 1.0:
            raise ConfigurationError("ATHENA_POLL_BACKOFF must be >= 1.0")
        if not 1 <= self.page_size <= 1000:
            # GetQueryResults rejects MaxResults outside 1..1000
            raise ConfigurationError("ATHENA_PAGE_SIZE must be between 1 and 1000")
        if len(self.csv_delimiter) != 1:
            raise ConfigurationError("ATHENA_CSV_DELIMITER must be a single character")
        return self


def _read_config(path: Optional[str]) -> Dict[str, Any]:
    if path:
        cfg_path = Path(path)
        if not cfg_path.exists():
            raise FileNotFoundError(f"Config not found: {cfg_path}")
    else:
        cfg_path = Path("config") / f"{_env('APP_ENV', 'dev')}.yaml"
        if not cfg_path.exists():
            # Env-only configuration is normal when embedded in a host tool.
            return {}
    return yaml.safe_load(cfg_path.read_text(encoding="utf-8")) or {}


def load_settings(path: Optional[str] = None) -> Settings:
    """Build Settings from a YAML file, then let environment variables win.

    Without ``path`` the file is ``config/<APP_ENV>.yaml`` and may be absent.
    """
    cfg = _read_config(path)
    d = Settings()

    app_cfg = cfg.get("app") or {}
    aws_cfg = cfg.get("aws") or {}
    ath_cfg = cfg.get("athena") or {}

    def _cfg_str(section: Dict[str, Any], key: str, default: str) -> str:
        val = section.get(key)
        return default if val is None else str(val)

    timeout_cfg = ath_cfg.get("execution_timeout", d.execution_timeout)

    settings = Settings(
        env=_env("APP_ENV", "dev") or "dev",
        log_level=_env("LOG_LEVEL", _cfg_str(app_cfg, "log_level", d.log_level)) or d.log_level,
        log_file=_env("LOG_FILE", _cfg_str(app_cfg, "log_file", d.log_file)) or "",
        aws_region=_env("AWS_REGION", _cfg_str(aws_cfg, "region", d.aws_region)) or d.aws_region,
        connection_method=(
            _env("ATHENA_CONNECTION_METHOD", _cfg_str(aws_cfg, "connection_method", d.connection_method))
            or d.connection_method
        ).strip().lower(),
        aws_access_key_id=_env("AWS_ACCESS_KEY_ID", _cfg_str(aws_cfg, "access_key_id", "")) or "",
        aws_secret_access_key=_env("AWS_SECRET_ACCESS_KEY", _cfg_str(aws_cfg, "secret_access_key", "")) or "",
        aws_session_token=_env("AWS_SESSION_TOKEN", _cfg_str(aws_cfg, "session_token", "")) or "",
        aws_profile=_env("AWS_PROFILE", _cfg_str(aws_cfg, "profile", "")) or "",
        athena_workgroup=_env("ATHENA_WORKGROUP", _cfg_str(ath_cfg, "workgroup", d.athena_workgroup)) or d.athena_workgroup,
        athena_output_location=_env("ATHENA_OUTPUT_LOCATION", _cfg_str(ath_cfg, "output_location", "")) or "",
        athena_catalog=_env("ATHENA_CATALOG", _cfg_str(ath_cfg, "catalog", d.athena_catalog)) or d.athena_catalog,
        poll_interval=_env_float("ATHENA_POLL_INTERVAL", ath_cfg.get("poll_interval", d.poll_interval)),
        poll_backoff=_env_float("ATHENA_POLL_BACKOFF", ath_cfg.get("poll_backoff", d.poll_backoff)),
        max_poll_interval=_env_float("ATHENA_MAX_POLL_INTERVAL", ath_cfg.get("max_poll_interval", d.max_poll_interval)),
        execution_timeout=_env_optional_float(
            "ATHENA_EXECUTION_TIMEOUT", _timeout_or_none(timeout_cfg)
        ),
        result_strategy=(
            _env("ATHENA_RESULT_STRATEGY", _cfg_str(ath_cfg, "result_strategy", d.result_strategy))
            or d.result_strategy
        ).strip().lower(),
        page_size=int(_env_float("ATHENA_PAGE_SIZE", ath_cfg.get("page_size", d.page_size))),
        page_delay=_env_float("ATHENA_PAGE_DELAY", ath_cfg.get("page_delay", d.page_delay)),
        csv_delimiter=_env("ATHENA_CSV_DELIMITER", _cfg_str(ath_cfg, "csv_delimiter", d.csv_delimiter)) or ",",
    )
    return settings.validate()
