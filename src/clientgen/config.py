"""
Run configuration for the client stub compiler.

All fields can be set through ``CLIENTGEN_*`` environment variables, a
``.env`` file, a YAML file passed to :func:`load_settings`, or keyword
overrides (highest precedence).

Example YAML::

    label: acme
    run_id: "20240101"
    deployment_context: /api
    package_conversions:
      - from: com.acme.server
        to: com.acme.client

Tags:
    settings, configuration, pydantic, yaml, clientgen
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from clientgen.errors import ConfigurationError
from clientgen.naming import PackageConversionRule


def default_run_id() -> str:
    """Milliseconds since the epoch, as a string."""
    return str(int(time.time() * 1000))


def normalize_context(context: str | None) -> str:
    """Strip leading slashes and ensure exactly one trailing slash when non-empty."""
    context = (context or "").strip().strip("/")
    return f"{context}/" if context else ""


class PackageConversion(BaseModel):
    """One ``from`` -> ``to`` package conversion; both attributes are required."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    from_: str = Field(alias="from")
    to: str

    def to_rule(self) -> PackageConversionRule:
        return PackageConversionRule(self.from_, self.to)


@dataclass(frozen=True)
class EndpointContext:
    """Default location the generated client stubs point at."""

    protocol: str = "http"
    host: str = "localhost"
    path_prefix: str = ""

    def url_for(self, service_name: str) -> str:
        return f"{self.protocol}://{self.host}/{self.path_prefix}soap/{service_name}"


class ClientGenSettings(BaseSettings):
    """
    Client stub compiler configuration.

    Fields
    ──────
    label               : Project label; the archive name defaults to ``<label>-client``
    archive_name        : Base name of the packaged client archives
    run_id              : Identifier used in persisted artifact names
    package_conversions : ``from`` -> ``to`` package rewrites for generated classes
    deployment_*        : Default endpoint protocol, host and context path
    output_dir          : Root of the generate/compile/build directories
    """

    model_config = SettingsConfigDict(
        env_prefix="CLIENTGEN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Naming ───────────────────────────────────────────────────
    label: str = "enunciate"
    archive_name: str | None = None
    run_id: str = Field(default_factory=default_run_id)
    package_conversions: list[PackageConversion] = Field(default_factory=list)

    # ── Endpoint defaults ────────────────────────────────────────
    deployment_protocol: str = "http"
    deployment_host: str = "localhost"
    deployment_context: str = ""

    # ── Paths / tooling ──────────────────────────────────────────
    output_dir: Path = Field(default=Path("build/clientgen"))
    template_dir: Path | None = None
    classpath: list[str] = Field(default_factory=list)
    javac: str = "javac"
    javac_timeout: int = Field(default=600, gt=0)
    parallel_variants: bool = False

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: str = "console"

    @field_validator("deployment_context", mode="before")
    @classmethod
    def _normalize_context(cls, value: Any) -> str:
        return normalize_context(value)

    @field_validator("run_id")
    @classmethod
    def _check_run_id(cls, value: str) -> str:
        if not value or "/" in value or "\\" in value:
            raise ValueError("run_id must be a non-empty file-name-safe string")
        return value

    @property
    def client_archive_name(self) -> str:
        return self.archive_name or f"{self.label}-client"

    @property
    def endpoint_context(self) -> EndpointContext:
        return EndpointContext(self.deployment_protocol, self.deployment_host, self.deployment_context)

    def conversion_rules(self) -> list[PackageConversionRule]:
        return [conversion.to_rule() for conversion in self.package_conversions]

    @classmethod
    def from_yaml(cls, yaml_path: Path, **overrides: Any) -> ClientGenSettings:
        return load_settings(yaml_path, **overrides)


def _configuration_error(error: ValidationError) -> ConfigurationError:
    for detail in error.errors():
        loc = detail.get("loc", ())
        if detail.get("type") == "missing" and loc and loc[0] == "package_conversions":
            attribute = "from" if loc[-1] in ("from", "from_") else loc[-1]
            return ConfigurationError(
                f"A '{attribute}' attribute must be specified on a package conversion",
                cause=error,
            ).with_context(entity=".".join(str(part) for part in loc))
    first = error.errors()[0] if error.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()))
    return ConfigurationError(
        f"Invalid configuration: {location}: {first.get('msg', error)}",
        cause=error,
    )


def load_settings(path: Path | None = None, **overrides: Any) -> ClientGenSettings:
    """
    Load settings from an optional YAML file plus keyword overrides.

    Overrides whose value is None are ignored, so CLI options can be passed
    through unconditionally.

    Raises:
        ConfigurationError: if the file cannot be read or parsed, or the
            resulting configuration is invalid
    """
    data: dict[str, Any] = {}
    if path is not None:
        try:
            with open(path, encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
        except OSError as e:
            raise ConfigurationError(f"Cannot read configuration file {path}", cause=e) from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file {path}", cause=e) from e
        if not isinstance(loaded, dict):
            raise ConfigurationError(f"Configuration file {path} must contain a mapping")
        data.update(loaded)

    data.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return ClientGenSettings(**data)
    except ValidationError as e:
        raise _configuration_error(e) from e
