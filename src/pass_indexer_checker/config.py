"""Configuration management for the indexer checker."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from pass_indexer_checker.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROPERTIES = Path("system.properties")
DEFAULT_MAIL_PROPERTIES = Path("mail.properties")

# Only these keys are taken from a system properties file.
PROPERTY_KEYS: dict[str, str] = {
    "pass.fedora.user": "fedora_user",
    "pass.fedora.password": "fedora_password",
    "pass.fedora.baseurl": "fedora_baseurl",
    "pass.elasticsearch.url": "elasticsearch_url",
    "pass.elasticsearch.limit": "elasticsearch_limit",
    "pass.indexer.checker.retries": "retries",
    "pass.indexer.checker.interval": "poll_interval",
    "pass.indexer.checker.timeout": "poll_timeout",
}


def load_properties(path: Path | str) -> dict[str, str]:
    """Read a Java-style properties file.

    Supports ``key=value``, ``key: value`` and ``key value`` lines, ``#`` and
    ``!`` comments, and trailing-backslash line continuation.

    Args:
        path: Path to the properties file

    Returns:
        Mapping of property keys to raw string values

    Raises:
        ConfigurationError: File is missing or unreadable
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(
            f"Could not open configuration file {path}: {e}", path=str(path)
        ) from e

    properties: dict[str, str] = {}
    pending = ""
    for raw in text.splitlines():
        line = pending + raw.strip() if pending else raw.strip()
        pending = ""
        if not line or line[0] in "#!":
            continue
        if line.endswith("\\") and not line.endswith("\\\\"):
            pending = line[:-1]
            continue

        key, value = _split_property(line)
        properties[key] = value

    if pending:
        key, value = _split_property(pending)
        properties[key] = value

    return properties


def _split_property(line: str) -> tuple[str, str]:
    """Split a logical properties line at the first separator."""
    for i, ch in enumerate(line):
        if ch in "=:":
            return line[:i].strip(), line[i + 1 :].strip()
        if ch.isspace():
            rest = line[i:].lstrip()
            if rest[:1] in ("=", ":"):
                rest = rest[1:]
            return line[:i], rest.strip()
    return line, ""


class CheckerConfig(BaseSettings):
    """Configuration for the indexer checker.

    Can be configured via environment variables (PASS_*), a system properties
    file, or passed directly.
    """

    model_config = SettingsConfigDict(
        env_prefix="pass_",
        case_sensitive=False,
        extra="ignore",
    )

    # Repository (Fedora) configuration
    fedora_baseurl: str = Field(
        default="http://localhost:8080/fcrepo/rest",
        description="Base URL of the PASS repository",
    )
    fedora_user: Optional[str] = Field(default=None, description="Repository user")
    fedora_password: Optional[str] = Field(default=None, description="Repository password")

    # Search index (Elasticsearch) configuration
    elasticsearch_url: str = Field(
        default="http://localhost:9200",
        description="Base URL of the search index server",
    )
    elasticsearch_index: str = Field(default="pass", description="Name of the PASS index")
    elasticsearch_limit: int = Field(
        default=100,
        ge=1,
        description="Maximum number of hits per index query",
    )

    jsonld_context: str = Field(
        default="https://oa-pass.github.io/pass-data-model/src/main/resources/context-3.5.jsonld",
        description="JSON-LD context attached to created records",
    )

    # HTTP client settings
    timeout: float = Field(default=30.0, ge=0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")

    # Polling
    retries: int = Field(default=50, ge=1, description="Poll attempts before giving up")
    poll_interval: float = Field(default=3.0, ge=0, description="Seconds between polls")
    poll_timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description="Overall deadline for a single poll in seconds",
    )

    # Thresholds
    min_mapping_properties: int = Field(
        default=10,
        ge=0,
        description="The index mapping must have more fields than this",
    )
    min_submitters: int = Field(
        default=10,
        ge=0,
        description="The index must hold at least this many submitters",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    @field_validator("fedora_baseurl", "elasticsearch_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Ensure base URLs don't end with a slash."""
        return v.strip().rstrip("/")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return v_upper

    @property
    def fedora_auth(self) -> tuple[str, str] | None:
        """Basic auth credentials for the repository, if configured."""
        if self.fedora_user:
            return (self.fedora_user, self.fedora_password or "")
        return None

    def get_index_url(self, path: str = "") -> str:
        """Construct a URL under the PASS index.

        Args:
            path: Path below the index (e.g., "_search")

        Returns:
            Full URL (e.g., "http://localhost:9200/pass/_search")
        """
        url = f"{self.elasticsearch_url}/{self.elasticsearch_index}"
        path = path.lstrip("/")
        return f"{url}/{path}" if path else url

    def get_repository_url(self, path: str) -> str:
        """Construct a repository URL from a container path."""
        return f"{self.fedora_baseurl}/{path.lstrip('/')}"

    @classmethod
    def from_properties(cls, path: Path | str | None = None, **overrides: Any) -> CheckerConfig:
        """Build configuration from an optional system properties file.

        Values from the file take precedence over the environment; explicit
        overrides take precedence over both. A missing file is skipped.

        Args:
            path: Properties file (defaults to ./system.properties)
            **overrides: Explicit field values

        Returns:
            CheckerConfig instance
        """
        path = Path(path) if path is not None else DEFAULT_SYSTEM_PROPERTIES
        values: dict[str, Any] = {}
        if path.is_file():
            logger.debug("Loading system properties from %s", path)
            properties = load_properties(path)
            for key, field_name in PROPERTY_KEYS.items():
                if key in properties:
                    values[field_name] = properties[key]
        else:
            logger.debug("No system properties file at %s", path)

        values.update(overrides)
        return cls._build(values, source=str(path))

    @classmethod
    def from_file(cls, path: Path | str, **overrides: Any) -> CheckerConfig:
        """Load configuration from a properties, YAML or JSON file.

        Args:
            path: Path to configuration file
            **overrides: Field values that take precedence over the file

        Returns:
            CheckerConfig instance
        """
        import json

        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Configuration file not found: {path}", path=str(path))

        if path.suffix == ".properties":
            return cls.from_properties(path, **overrides)
        if path.suffix == ".json":
            with path.open() as f:
                data = json.load(f)
        elif path.suffix in {".yaml", ".yml"}:
            import yaml

            with path.open() as f:
                data = yaml.safe_load(f) or {}
        else:
            raise ConfigurationError(f"Unsupported file format: {path.suffix}", path=str(path))

        data.update(overrides)
        return cls._build(data, source=str(path))

    @classmethod
    def _build(cls, data: dict[str, Any], source: str) -> CheckerConfig:
        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration in {source}: {e}") from e


class MailConfig(BaseModel):
    """Mail server settings for failure notification, read from mail.properties."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    smtp_host: str = Field(alias="mail.smtp.host")
    smtp_port: int = Field(default=25, alias="mail.smtp.port")
    smtp_user: Optional[str] = Field(default=None, alias="mail.smtp.user")
    smtp_password: Optional[str] = Field(default=None, alias="mail.smtp.password")
    starttls: bool = Field(default=False, alias="mail.smtp.starttls.enable")
    ssl: bool = Field(default=False, alias="mail.smtp.ssl.enable")
    timeout: float = Field(default=30.0, alias="mail.smtp.timeout")
    sender: str = Field(alias="mail.from")
    recipients: list[str] = Field(alias="mail.to")

    @field_validator("recipients", mode="before")
    @classmethod
    def split_recipients(cls, v: Any) -> Any:
        """Accept a comma-separated recipient list."""
        if isinstance(v, str):
            return [r.strip() for r in v.split(",") if r.strip()]
        return v

    @field_validator("recipients")
    @classmethod
    def validate_recipients(cls, v: list[str]) -> list[str]:
        """Require at least one recipient."""
        if not v:
            raise ValueError("at least one recipient is required")
        return v

    @classmethod
    def from_properties(cls, path: Path | str | None = None) -> MailConfig:
        """Load mail settings from a properties file.

        Raises:
            ConfigurationError: File is missing, unreadable or incomplete
        """
        path = Path(path) if path is not None else DEFAULT_MAIL_PROPERTIES
        if not path.is_file():
            raise ConfigurationError(
                f"Required configuration file {path} is missing", path=str(path)
            )

        try:
            return cls.model_validate(load_properties(path))
        except ValidationError as e:
            raise ConfigurationError(f"Invalid mail configuration in {path}: {e}") from e
