import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from murl.config.logging import StructuredLogger, get_logger, setup_logging
from murl.core.exceptions import ConfigurationError
from murl.models.route import RouteDefinition


class _StrictModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


class TLSConfig(_StrictModel):
    """TLS certificate settings. Both files or neither must be given."""
    cert: str = ""
    key: str = ""

    @model_validator(mode="after")
    def _check_pair(self) -> "TLSConfig":
        if self.cert and not self.key:
            raise ValueError("server TLS key is required when TLS cert is provided")
        if self.key and not self.cert:
            raise ValueError("server TLS cert is required when TLS key is provided")
        for label, path in (("cert", self.cert), ("key", self.key)):
            if path and not Path(path).exists():
                raise ValueError(f"server TLS {label} file at path {path!r} does not exist")
        return self

    @property
    def enabled(self) -> bool:
        return bool(self.cert and self.key)


class DocumentationConfig(_StrictModel):
    """Route documentation page settings."""
    path: str = "/"
    page: str = Field(default="", description="Custom Jinja2 page template")

    @field_validator("path")
    @classmethod
    def _check_path(cls, value: str) -> str:
        value = value or "/"
        if not value.startswith("/"):
            raise ValueError("documentation path must be an absolute path (start with slash)")
        return value


class ServerConfig(_StrictModel):
    """Server configuration settings."""
    address: str
    tls: TLSConfig = Field(default_factory=TLSConfig)
    documentation: DocumentationConfig = Field(default_factory=DocumentationConfig)

    @field_validator("address")
    @classmethod
    def _check_address(cls, value: str) -> str:
        if not value:
            raise ValueError("server address is required")
        _split_address(value)
        return value

    @property
    def host(self) -> str:
        return _split_address(self.address)[0]

    @property
    def port(self) -> int:
        return _split_address(self.address)[1]


class LoggingConfig(_StrictModel):
    """Logging settings."""
    level: str = "INFO"
    format: str = "text"
    access_log: bool = True

    @field_validator("format")
    @classmethod
    def _check_format(cls, value: str) -> str:
        if value not in ("text", "json"):
            raise ValueError(f"unsupported log format {value!r} (supported are text and json)")
        return value


class MurlConfig(_StrictModel):
    """Main configuration: server settings plus the ordered route definitions."""
    server: ServerConfig
    routes: List[RouteDefinition] = Field(default_factory=list)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _split_address(address: str) -> Tuple[str, int]:
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"server address {address!r} must have the form host:port")
    return host.strip("[]") or "0.0.0.0", int(port)


class ConfigLoader:
    """Configuration loader for YAML and JSON files."""

    SUPPORTED_EXTENSIONS = (".yaml", ".yml", ".json")

    def load(self, path: Union[str, Path]) -> MurlConfig:
        """Load and validate the configuration file at ``path``.

        Args:
            path: Path to a ``.yaml``, ``.yml`` or ``.json`` file

        Returns:
            Validated configuration. Routes are decoded but not compiled.

        Raises:
            ConfigurationError: If the file cannot be read, decoded or validated
        """
        path = Path(path)
        data = self.load_file(path)

        try:
            return MurlConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(f"invalid configuration in {path}: {e}") from e

    def load_file(self, path: Path) -> Dict[str, Any]:
        """Decode the configuration file into a plain mapping."""
        extension = path.suffix.lower()
        if extension not in self.SUPPORTED_EXTENSIONS:
            raise ConfigurationError(
                f"unsupported configuration file extension: {extension!r} "
                "(supported are .yaml, .yml and .json)"
            )

        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"failed to read configuration file at {path}: {e}") from e

        try:
            if extension == ".json":
                data = json.loads(content)
            else:
                data = yaml.safe_load(content)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigurationError(f"failed to parse configuration file {path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"configuration file {path} must contain a mapping at the top level")
        return data


def load_config(path: Union[str, Path], loader: Optional[ConfigLoader] = None) -> MurlConfig:
    """Load the configuration file at ``path``."""
    return (loader or ConfigLoader()).load(path)


__all__ = [
    "ConfigLoader",
    "DocumentationConfig",
    "LoggingConfig",
    "MurlConfig",
    "ServerConfig",
    "StructuredLogger",
    "TLSConfig",
    "get_logger",
    "load_config",
    "setup_logging",
]
