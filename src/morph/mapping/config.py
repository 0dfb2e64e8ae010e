"""
Configuration-driven mapping creation.

A mapping configuration names the mapping source and, optionally, the
limits it is compiled with:

    name: people
    mapping: |
      rename .name -> .username
      where .age > 18
    limits:
      maxAstDepth: 32

Keys are accepted in either snake_case or camelCase.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Mapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field

from .builtins import BuiltinFunction
from .limits import DEFAULT_MAPPING_LIMITS, MappingLimits
from .program import CompiledMapping, compile_mapping

logger = logging.getLogger("morph.mapping.config")

# Fields understood at the top level of a mapping configuration.
KNOWN_CONFIG_FIELDS = frozenset(
    {
        "mapping",
        "name",
        "limits",
        "warn_on_unknown_fields",
        "warnOnUnknownFields",
    }
)


class MappingConfig(BaseModel):
    """Configuration for creating a CompiledMapping."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    # The mapping source text
    mapping: Optional[str] = None

    # Optional display name, used in log records
    name: Optional[str] = None

    # Mapping limits, snake_case or camelCase keys
    limits: dict[str, Any] | None = None

    # Whether to log warnings for unknown fields (default: True)
    warn_on_unknown_fields: bool = Field(default=True, alias="warnOnUnknownFields")


def _to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _normalize_config(config: MappingConfig | dict[str, Any] | None) -> dict[str, Any]:
    """Normalize and validate configuration."""
    if config is None:
        raise ValueError("create_mapping requires a configuration with a mapping")

    if isinstance(config, MappingConfig):
        candidate = config.model_dump(by_alias=False)
    else:
        candidate = dict(config)

    mapping = candidate.get("mapping")
    if not isinstance(mapping, str) or not mapping.strip():
        raise ValueError("MappingConfig requires a non-empty mapping")

    name = candidate.get("name")
    if name is not None and not isinstance(name, str):
        raise ValueError("name must be a string")

    # Support both snake_case and camelCase for warn_on_unknown_fields
    warn_on_unknown_fields = candidate.get(
        "warn_on_unknown_fields", candidate.get("warnOnUnknownFields")
    )
    if warn_on_unknown_fields is not None and not isinstance(
        warn_on_unknown_fields, bool
    ):
        raise ValueError("warnOnUnknownFields must be a boolean")

    limits = candidate.get("limits")
    if limits is not None and not isinstance(limits, dict | MappingLimits):
        raise ValueError("limits must be an object")

    if warn_on_unknown_fields is not False:
        for key in candidate:
            if key not in KNOWN_CONFIG_FIELDS:
                logger.warning("unknown_mapping_config_field", extra={"field": key})

    return {
        "mapping": mapping,
        "name": name,
        "limits": limits,
        "warn_on_unknown_fields": (
            warn_on_unknown_fields if warn_on_unknown_fields is not None else True
        ),
    }


def _limits_from_dict(
    data: dict[str, Any] | MappingLimits | None, warn_on_unknown: bool = True
) -> MappingLimits:
    """Builds MappingLimits, falling back to the defaults for absent keys."""
    if data is None:
        return DEFAULT_MAPPING_LIMITS
    if isinstance(data, MappingLimits):
        return data

    values: dict[str, int] = {}
    known: set[str] = set()
    for field in dataclasses.fields(MappingLimits):
        camel = _to_camel(field.name)
        known.update((field.name, camel))
        value = data.get(
            camel,
            data.get(field.name, getattr(DEFAULT_MAPPING_LIMITS, field.name)),
        )
        if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
            raise ValueError(f"{camel} must be a positive integer")
        values[field.name] = value

    if warn_on_unknown:
        for key in data:
            if key not in known:
                logger.warning("unknown_mapping_limit_field", extra={"field": key})

    return MappingLimits(**values)


def load_mapping_config(text: str) -> MappingConfig:
    """
    Parses a YAML (or JSON) mapping configuration.

    Args:
        text: The configuration text

    Returns:
        The parsed configuration

    Raises:
        ValueError: If the text is not a configuration object
    """
    data = yaml.safe_load(text)
    if data is None:
        raise ValueError("mapping configuration is empty")
    if not isinstance(data, dict):
        raise ValueError("mapping configuration must be an object")
    return MappingConfig.model_validate(data)


def create_mapping(
    config: MappingConfig | dict[str, Any] | str | None,
    functions: Optional[Mapping[str, BuiltinFunction]] = None,
) -> CompiledMapping:
    """
    Creates a CompiledMapping from a configuration.

    Args:
        config: A MappingConfig, a dict, or YAML configuration text
        functions: Optional extra functions, added to the built-ins

    Returns:
        The compiled mapping

    Raises:
        ValueError: If the configuration is invalid
        MappingError: If the mapping source does not compile
    """
    if isinstance(config, str):
        config = load_mapping_config(config)

    normalized = _normalize_config(config)
    limits = _limits_from_dict(
        normalized["limits"], normalized["warn_on_unknown_fields"]
    )

    compiled = compile_mapping(normalized["mapping"], limits, functions)

    logger.debug(
        "mapping_created",
        extra={
            "mapping_name": normalized["name"],
            "statement_count": len(compiled.program),
        },
    )

    return compiled
