from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, ValidationInfo, field_validator

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://localhost:8089"
DEFAULT_APP = "search"
DEFAULT_SPLUNK_HOME = "/opt/splunk"
DEFAULT_SCRIPT_NAME = "trigger_saved_search.py"
MIN_TOKEN_LENGTH = 32

_ENDPOINT_RE = re.compile(r"^https?://[a-zA-Z0-9.-]+:[0-9]+$")

ENV_FIELDS = {
    "token": "SPLUNK_TOKEN",
    "management_endpoint": "SPLUNK_MANAGEMENT_ENDPOINT",
    "owner": "OWNER",
    "app": "APP",
    "enable_logging": "ENABLE_LOGGING",
    "splunk_home": "SPLUNK_HOME",
    "verify_tls": "SPLUNK_VERIFY_TLS",
    "timeout_sec": "SPLUNK_TIMEOUT",
    "script_name": "TRIGGER_SCRIPT_NAME",
}


class ConfigError(Exception):
    def __init__(self, errors: List[str]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class TriggerConfig(BaseModel):
    """Settings for one run, validated once and never mutated."""

    model_config = ConfigDict(frozen=True)

    token: str = Field(default="", validate_default=True)
    management_endpoint: str = DEFAULT_ENDPOINT
    owner: str = Field(default="", validate_default=True)
    app: str = DEFAULT_APP
    enable_logging: bool = True
    splunk_home: str = DEFAULT_SPLUNK_HOME
    verify_tls: bool = False
    timeout_sec: int = Field(default=30, gt=0)
    script_name: str = DEFAULT_SCRIPT_NAME
    log_file: Optional[Path] = None

    @field_validator("token")
    @classmethod
    def validate_token(cls, value: str) -> str:
        if not value:
            raise ValueError("SPLUNK_TOKEN cannot be empty")
        return value

    @field_validator("management_endpoint")
    @classmethod
    def validate_endpoint(cls, value: str) -> str:
        if not _ENDPOINT_RE.match(value):
            raise ValueError(f"SPLUNK_MANAGEMENT_ENDPOINT must be in format http(s)://hostname:port (current value: {value})")
        return value

    @field_validator("owner", "app")
    @classmethod
    def validate_namespace(cls, value: str, info: ValidationInfo) -> str:
        if not value or any(char.isspace() for char in value):
            raise ValueError(f"{ENV_FIELDS[info.field_name]} cannot be empty or contain spaces")
        return value

    @field_validator("script_name")
    @classmethod
    def validate_script_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("TRIGGER_SCRIPT_NAME cannot be empty")
        return value.strip()

    @property
    def script_stem(self) -> str:
        return script_stem(self.script_name)

    @property
    def log_dir(self) -> Path:
        return log_dir_for(self.splunk_home)

    @property
    def log_file_name(self) -> str:
        return f"{self.script_stem}.log"


def script_stem(script_name: str) -> str:
    stem, dot, _ = script_name.rpartition(".")
    return stem if dot and stem else script_name


def log_dir_for(splunk_home: str) -> Path:
    return Path(splunk_home) / "var" / "log" / "splunk"


def resolve_log_file(log_dir: Path, file_name: str) -> Path:
    """Return a writable log file path, falling back to the current directory."""
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except OSError:
        logger.warning("WARNING: Cannot create log directory %s. Using current directory.", log_dir)
        log_dir = Path(".")
    log_file = log_dir / file_name
    try:
        with open(log_file, "a", encoding="utf-8"):
            pass
    except OSError as exc:
        raise ConfigError([f"Cannot write to log file {log_file}"]) from exc
    return log_file


def _format_errors(exc: ValidationError) -> List[str]:
    messages = []
    for error in exc.errors():
        field = error["loc"][0] if error["loc"] else ""
        message = error["msg"]
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        elif field in ENV_FIELDS:
            message = f"{ENV_FIELDS[field]}: {message}"
        messages.append(message)
    return messages


def _logging_requested(values: Mapping[str, object]) -> bool:
    try:
        return TypeAdapter(bool).validate_python(values.get("enable_logging", True))
    except ValidationError:
        return False


def load_config(
    environ: Optional[Mapping[str, str]] = None,
    check_log_file: bool = False,
    **overrides,
) -> TriggerConfig:
    """Build the run configuration from environment variables plus explicit overrides.

    Unset variables fall back to the model defaults; ``None`` overrides are ignored.
    With ``check_log_file`` the log file is created (or its fallback chosen) and stored
    on the config. Field problems and log file problems are reported together through
    :class:`ConfigError`.
    """
    env = os.environ if environ is None else environ
    values = {field: env[name] for field, name in ENV_FIELDS.items() if name in env}
    values.update({key: value for key, value in overrides.items() if value is not None})

    token = str(values.get("token", ""))
    if token and len(token) < MIN_TOKEN_LENGTH:
        logger.warning("WARNING: SPLUNK_TOKEN appears to be shorter than expected (< %d characters)", MIN_TOKEN_LENGTH)

    errors: List[str] = []
    config = None
    try:
        config = TriggerConfig(**values)
    except ValidationError as exc:
        errors.extend(_format_errors(exc))

    log_file = None
    if check_log_file and _logging_requested(values):
        name = script_stem(str(values.get("script_name", "")).strip() or DEFAULT_SCRIPT_NAME)
        try:
            log_file = resolve_log_file(log_dir_for(str(values.get("splunk_home", DEFAULT_SPLUNK_HOME))), f"{name}.log")
        except ConfigError as exc:
            errors.extend(exc.errors)

    if errors:
        raise ConfigError(errors)
    if log_file is not None:
        config = config.model_copy(update={"log_file": log_file})
    return config
