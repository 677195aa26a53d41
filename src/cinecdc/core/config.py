"""cinecdc configuration — reads from cinecdc.toml, env vars, and CLI args."""

import os
import tomllib
from decimal import Decimal
from pathlib import Path
from typing import Dict, Any, Literal

from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings

from cinecdc.core.errors import FatalConfigurationError

STAGE_NAMES = ("ingest", "enrich", "aggregate")


class StageSettings(BaseModel):
    """Per-stage scheduling."""

    trigger: Literal["interval", "downstream"] = "interval"
    interval_seconds: int = Field(default=60, gt=0)
    timeout_seconds: int = Field(default=300, gt=0)
    batch_size: int = Field(default=1000, gt=0)


class RulesSettings(BaseModel):
    """Categorization thresholds for the enrichment stage."""

    group_min_tickets: int = 2
    large_group_min_tickets: int = 5
    budget_below: Decimal = Decimal("250")
    premium_above: Decimal = Decimal("500")


def default_stages() -> Dict[str, StageSettings]:
    return {
        "ingest": StageSettings(trigger="interval", interval_seconds=60),
        "enrich": StageSettings(trigger="downstream"),
        "aggregate": StageSettings(trigger="downstream"),
    }


class CineSettings(BaseSettings):
    """Daemon settings."""

    # Server
    host: str = "0.0.0.0"
    port: int = 8500
    log_level: str = "info"

    # Database (SQLite by default for zero-setup)
    database_url: str = Field(
        default="sqlite+aiosqlite:///cinecdc.db",
        alias="CINECDC_DATABASE_URL",
    )

    # Auth
    api_key: str = Field(default="cinecdc_dev_key", alias="CINECDC_API_KEY")

    # Capture log partitions (single writer per shard)
    capture_shards: int = 8

    # Loaded from cinecdc.toml [stages.*] and [rules]
    stages: Dict[str, StageSettings] = Field(default_factory=default_stages)
    rules: RulesSettings = Field(default_factory=RulesSettings)

    model_config = {"env_prefix": "CINECDC_", "env_file": ".env", "populate_by_name": True}


class ClientSettings(BaseSettings):
    """CLI client settings."""

    host: str = Field(default="http://localhost:8500", alias="CINECDC_HOST")
    api_key: str = Field(default="cinecdc_dev_key", alias="CINECDC_API_KEY")

    model_config = {"env_prefix": "CINECDC_"}


def _read_toml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise FatalConfigurationError(f"Malformed config file {path}: {e}") from e


def _load_toml_config() -> Dict[str, Any]:
    """Load configuration from cinecdc.toml files.

    Searches for cinecdc.toml in:
    1. CINECDC_HOME (~/.cinecdc/cinecdc.toml by default)
    2. Current directory (./cinecdc.toml)

    Returns:
        Combined configuration dict from found files
    """
    config: Dict[str, Any] = {}

    home = Path(os.environ.get("CINECDC_HOME", "~/.cinecdc")).expanduser()
    global_config_path = home / "cinecdc.toml"
    if global_config_path.exists():
        config.update(_read_toml(global_config_path))

    # Local file takes precedence; stage tables merge per stage
    local_config_path = Path("cinecdc.toml")
    if local_config_path.exists():
        local_config = _read_toml(local_config_path)
        for name, values in local_config.get("stages", {}).items():
            config.setdefault("stages", {}).setdefault(name, {}).update(values)
        if "rules" in local_config:
            config.setdefault("rules", {}).update(local_config["rules"])

    return config


def get_settings() -> CineSettings:
    toml_config = _load_toml_config()

    settings = CineSettings()
    stages = {**default_stages(), **settings.stages}
    try:
        for name, values in toml_config.get("stages", {}).items():
            if name not in STAGE_NAMES:
                raise FatalConfigurationError(f"Unknown stage '{name}' in config")
            stages[name] = StageSettings.model_validate({**stages[name].model_dump(), **values})
        if "rules" in toml_config:
            settings.rules = RulesSettings.model_validate(toml_config["rules"])
    except ValidationError as e:
        raise FatalConfigurationError(f"Invalid configuration: {e}") from e
    settings.stages = stages

    return settings


def get_client_settings() -> ClientSettings:
    return ClientSettings()
