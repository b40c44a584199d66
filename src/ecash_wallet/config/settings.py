"""Application settings loaded from environment variables and config files.

Configuration is loaded from (highest priority first):
1. Environment variables (prefix: ``ECASHWALLET_``, nested via ``__``)
2. YAML config file (``ECASHWALLET_CONFIG_PATH`` env var or :meth:`AppConfig.from_yaml`)
3. Defaults defined here
"""

from __future__ import annotations

import enum
from pathlib import Path
from typing import Any, Self

import yaml
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_FINGERPRINT_PLACEHOLDER = "{fingerprint}"
_MEMORY_DATABASE = ":memory:"


class LogFormat(enum.StrEnum):
    """Supported log output formats."""

    HUMAN = "human"
    JSON = "json"


# ---------------------------------------------------------------------------
# Sub-config models
# ---------------------------------------------------------------------------


class StoreConfig(BaseSettings):
    """Per-identity wallet store settings.

    Each recovery phrase gets its own SQLite file named after its fingerprint
    inside ``state_dir``. ``dsn`` overrides the file location entirely; a
    ``{fingerprint}`` placeholder in it is substituted per identity. Both
    ``file_template`` and a persistent ``dsn`` must carry the placeholder.
    """

    model_config = SettingsConfigDict(
        env_prefix="ECASHWALLET_STORE__",
        case_sensitive=False,
    )

    state_dir: str = Field(
        default="~/.cashu-wallet",
        description="Directory holding one wallet-<fingerprint>.db per identity",
    )
    file_template: str = "wallet-{fingerprint}.db"
    dsn: str = Field(
        default="",
        description="Async database URL overriding state_dir/file_template",
    )
    max_idle_connections: int = 5
    max_open_connections: int = 10
    debug_sql: bool = False

    @field_validator("file_template")
    @classmethod
    def _template_per_identity(cls, value: str) -> str:
        if _FINGERPRINT_PLACEHOLDER not in value:
            msg = f"file_template must contain {_FINGERPRINT_PLACEHOLDER} so identities never share a store"
            raise ValueError(msg)
        return value

    @field_validator("dsn")
    @classmethod
    def _dsn_per_identity(cls, value: str) -> str:
        # A private in-memory database is never shared between engines.
        if not value or _FINGERPRINT_PLACEHOLDER in value or value.endswith(_MEMORY_DATABASE):
            return value
        msg = f"dsn must contain {_FINGERPRINT_PLACEHOLDER} so identities never share a store"
        raise ValueError(msg)

    def state_path(self) -> Path:
        """Return the expanded state directory."""
        return Path(self.state_dir).expanduser()

    def dsn_for(self, fingerprint: str) -> str:
        """Build the async database URL for an identity fingerprint."""
        if self.dsn:
            return self.dsn.replace(_FINGERPRINT_PLACEHOLDER, fingerprint)
        filename = self.file_template.replace(_FINGERPRINT_PLACEHOLDER, fingerprint)
        return f"sqlite+aiosqlite:///{self.state_path() / filename}"

    @property
    def uses_state_dir(self) -> bool:
        """True when the store lives under ``state_dir`` (no DSN override)."""
        return not self.dsn


class MintConfig(BaseSettings):
    """Issuing mint settings used when encoding outgoing tokens."""

    model_config = SettingsConfigDict(
        env_prefix="ECASHWALLET_MINT__",
        case_sensitive=False,
    )

    url: str = "https://testnut.cashu.space"
    unit: str = "sat"


class LoggingConfig(BaseSettings):
    """Logging settings consumed by :func:`ecash_wallet.logging_config.setup_logging`."""

    model_config = SettingsConfigDict(
        env_prefix="ECASHWALLET_LOGGING__",
        case_sensitive=False,
    )

    level: str = "INFO"
    format: LogFormat = LogFormat.HUMAN
    file: str = ""


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------


def _load_yaml(path: str | Path) -> dict[str, Any]:
    """Load a YAML configuration file and return its contents as a dict.

    Returns an empty dict if the file doesn't exist or is empty.
    """
    p = Path(path)
    if not p.exists():
        return {}
    text = p.read_text(encoding="utf-8")
    data = yaml.safe_load(text)
    return data if isinstance(data, dict) else {}


class AppConfig(BaseSettings):
    """Top-level wallet configuration.

    Loads settings from environment variables (``ECASHWALLET_`` prefix),
    an optional YAML file, and built-in defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="ECASHWALLET_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    debug: bool = False
    config_path: str = ""

    store: StoreConfig = Field(default_factory=StoreConfig)
    mint: MintConfig = Field(default_factory=MintConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="before")
    @classmethod
    def _merge_yaml(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Merge YAML config file contents under the env var overrides."""
        config_path = values.get("config_path", "")
        if not config_path:
            return values
        yaml_data = _load_yaml(config_path)
        for key, val in yaml_data.items():
            if key not in values or values[key] is None:
                values[key] = val
            elif isinstance(val, dict) and isinstance(values.get(key), dict):
                values[key] = {**val, **values[key]}
        return values

    @classmethod
    def from_yaml(cls, path: str | Path) -> Self:
        """Construct ``AppConfig`` loading defaults from a YAML file.

        Environment variables still override YAML values.
        """
        return cls(config_path=str(path))
