"""Configuration loading for migration runs and environment connections."""

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import ConfigError
from .models.migration import (
    FieldMapping,
    LookupMapping,
    LookupStrategy,
    MigrationConfig,
    Operation,
    MAX_BATCH_SIZE,
    MIN_BATCH_SIZE,
)

ENV_PREFIX = "RECORD_MIGRATOR_"
DEFAULT_API_VERSION = "v9.2"


class FieldMappingModel(BaseModel):
    source_field: str
    target_field: Optional[str] = None
    is_enabled: bool = True
    field_type: str = ""


class LookupMappingModel(BaseModel):
    field_name: str
    target_entity: str = ""
    strategy: LookupStrategy = LookupStrategy.AUTO
    field_display_name: str = ""
    manual_mappings: Dict[str, str] = Field(default_factory=dict)


class MigrationConfigFile(BaseModel):
    """Schema of a migration configuration file."""
    entity_logical_name: str = Field(min_length=1)
    entity_display_name: str = ""
    field_mappings: List[FieldMappingModel] = Field(min_length=1)
    lookup_mappings: List[LookupMappingModel] = Field(default_factory=list)
    operations: List[Operation] = Field(default_factory=lambda: [Operation.CREATE], min_length=1)
    batch_size: int = Field(default=10, ge=MIN_BATCH_SIZE, le=MAX_BATCH_SIZE)
    filter_query: Optional[str] = None

    @field_validator("filter_query")
    @classmethod
    def empty_filter_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value

    def to_config(self) -> MigrationConfig:
        """Convert to the engine's configuration model."""
        return MigrationConfig(
            entity_logical_name=self.entity_logical_name,
            entity_display_name=self.entity_display_name,
            field_mappings=[
                FieldMapping(
                    source_field=m.source_field,
                    target_field=m.target_field or m.source_field,
                    is_enabled=m.is_enabled,
                    field_type=m.field_type,
                )
                for m in self.field_mappings
            ],
            lookup_mappings=[
                LookupMapping(
                    field_name=m.field_name,
                    field_display_name=m.field_display_name,
                    target_entity=m.target_entity,
                    strategy=m.strategy,
                    manual_mappings=dict(m.manual_mappings),
                )
                for m in self.lookup_mappings
            ],
            operations=list(self.operations),
            batch_size=self.batch_size,
            filter_query=self.filter_query,
        )


class EnvironmentSettings(BaseModel):
    """Connection settings for one environment."""
    url: str = Field(min_length=1)
    token: Optional[str] = None
    api_version: str = DEFAULT_API_VERSION
    rate_limit: float = Field(default=0.0, ge=0)
    timeout: float = Field(default=30.0, gt=0)

    @classmethod
    def from_env(cls, role: str, environ: Optional[Dict[str, str]] = None, **overrides: Any) -> "EnvironmentSettings":
        """
        Read settings for "source" or "target" from environment variables.

        RECORD_MIGRATOR_<ROLE>_URL and RECORD_MIGRATOR_<ROLE>_TOKEN are read,
        plus the shared RECORD_MIGRATOR_API_VERSION. Non-None overrides win.
        """
        environ = os.environ if environ is None else environ
        prefix = f"{ENV_PREFIX}{role.upper()}_"
        values: Dict[str, Any] = {
            "url": environ.get(f"{prefix}URL", ""),
            "token": environ.get(f"{prefix}TOKEN"),
            "api_version": environ.get(f"{ENV_PREFIX}API_VERSION", DEFAULT_API_VERSION),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})

        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigError(
                f"Invalid {role} environment settings (set {prefix}URL): {e}",
                details={"role": role},
            ) from e


def parse_config(data: Dict[str, Any]) -> MigrationConfig:
    """Validate a configuration document and build a MigrationConfig."""
    try:
        return MigrationConfigFile.model_validate(data).to_config()
    except ValidationError as e:
        raise ConfigError(f"Invalid migration config: {e}", details={"errors": e.errors()}) from e


def load_config(path: Union[str, Path]) -> MigrationConfig:
    """Load a migration configuration from a JSON file."""
    return parse_config(_read_json(path))


def save_config(config: MigrationConfig, path: Union[str, Path]) -> None:
    """Save a migration configuration to a JSON file."""
    with open(path, 'w') as f:
        json.dump(config.to_dict(), f, indent=2)


def load_records(path: Union[str, Path]) -> List[Dict[str, Any]]:
    """
    Load approved records from a JSON file.

    Accepts a list of records, or a list of preview entries that wrap each
    record in a "data" key.
    """
    data = _read_json(path)
    if isinstance(data, dict):
        data = data.get("records", data.get("value"))
    if not isinstance(data, list):
        raise ConfigError(f"Records file {path} must contain a list of records")

    records = []
    for item in data:
        if not isinstance(item, dict):
            raise ConfigError(f"Records file {path} contains a non-object entry")
        records.append(item["data"] if isinstance(item.get("data"), dict) else item)
    return records


def _read_json(path: Union[str, Path]) -> Any:
    try:
        with open(path) as f:
            return json.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"File not found: {path}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e
