from __future__ import annotations

import codecs
import json
from dataclasses import fields
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from upd_converter.models.config_models import ColumnMapping, ConverterConfig, XmlSettings

"""Config loader.

Responsibilities:
- Load YAML config (default `config/convert.yml`)
- Validate against the bundled JSON schema (unknown keys rejected)
- Overlay the values on the dataclass defaults

A missing file at the default location is not an error: the converter runs
with built-in defaults. A missing file at an explicitly given path is.
"""

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/convert.yml")

# Ключи секции defaults -> поля XmlSettings
_DEFAULTS_KEYS = {
    "unit": "default_unit",
    "okei_code": "default_okei_code",
    "vat_rate": "default_vat_rate",
}


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: If the schema file is missing or not valid JSON, or the
            config data fails validation (wrong types, unknown keys, ...).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _build_mapping(raw: dict[str, Any]) -> ColumnMapping:
    known = {f.name for f in fields(ColumnMapping)}
    return ColumnMapping(**{k: v for k, v in raw.items() if k in known})


def _build_xml_settings(raw_xml: dict[str, Any], raw_defaults: dict[str, Any]) -> XmlSettings:
    values = dict(raw_xml)
    for key, attr in _DEFAULTS_KEYS.items():
        if key in raw_defaults:
            values[attr] = raw_defaults[key]
    settings = XmlSettings(**values)
    try:
        codecs.lookup(settings.output_encoding)
    except LookupError as e:
        raise ConfigError(f"unknown output encoding: {settings.output_encoding}") from e
    return settings


def config_from_dict(data: dict[str, Any]) -> ConverterConfig:
    """Validate a plain dict (already parsed YAML) and build the config."""
    _validate_config_schema(data)
    return ConverterConfig(
        mapping=_build_mapping(data.get("mapping") or {}),
        xml=_build_xml_settings(data.get("xml") or {}, data.get("defaults") or {}),
    )


def load_config(path: Path | None = None) -> ConverterConfig:
    if path is None:
        if not DEFAULT_CONFIG_PATH.exists():
            return ConverterConfig()
        path = DEFAULT_CONFIG_PATH
    elif not path.exists():
        raise ConfigError(f"config file not found: {path}")

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping: {path}")

    return config_from_dict(data)
