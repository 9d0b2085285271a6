"""
Render parameter loading for the monitor configuration generator.

This module loads ``RenderParameters`` from an optional YAML file, validates
it against a JSON schema, expands ``${VAR}`` environment references, and
applies command-line overrides on top.

Example file::

    alertmanager_url: "${ALERTMANAGER_URL}"
    namespaces: [tidb]
    target_regex: "basic.*"
    enable_tls: true
    tls_fallback:
      enabled: true
      job_name: tidb-cluster-tikv
      pod_name_regex: '.*\\-tikv\\-\\d*$'
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Optional, Sequence

import yaml
from jsonschema import Draft7Validator

from .models import CLUSTER_JOB_NAME, TLSFallbackPolicy, RenderParameters
from .patterns import Regexp

logger = logging.getLogger(__name__)


DEFAULT_NAMESPACES = ["default"]
DEFAULT_TARGET_REGEX = ".*"

# JSON Schema for parameter file validation
PARAMETERS_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "alertmanager_url": {"type": "string"},
        "namespaces": {
            "type": "array",
            "items": {"type": "string", "minLength": 1},
        },
        "target_regex": {"type": "string"},
        "enable_tls": {"type": "boolean"},
        "tls_fallback": {
            "type": "object",
            "properties": {
                "enabled": {"type": "boolean"},
                "job_name": {
                    "type": "string",
                    "minLength": 1,
                    "not": {"const": CLUSTER_JOB_NAME},
                },
                "pod_name_regex": {"type": "string"},
            },
            "additionalProperties": False,
        },
    },
    "additionalProperties": False,
}

ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


class ConfigValidationError(Exception):
    """Raised when render parameters fail validation."""

    def __init__(self, message: str, errors: list[str] | None = None):
        super().__init__(message)
        self.errors = errors or []


def validate_parameters(data: dict[str, Any]) -> list[str]:
    """
    Validate parameter data against the schema.

    Args:
        data: Parameter dictionary to validate

    Returns:
        List of validation error messages (empty if valid)
    """
    validator = Draft7Validator(PARAMETERS_SCHEMA)
    errors = []
    for error in validator.iter_errors(data):
        path = ".".join(str(p) for p in error.path) if error.path else "root"
        errors.append(f"{path}: {error.message}")
    return errors


def expand_env_vars(value: Any) -> Any:
    """
    Expand ``${VAR_NAME}`` references in strings, recursing into lists and dicts.

    Unset variables expand to an empty string.
    """
    if isinstance(value, str):
        return ENV_VAR_PATTERN.sub(lambda match: os.environ.get(match.group(1), ""), value)
    if isinstance(value, list):
        return [expand_env_vars(item) for item in value]
    if isinstance(value, dict):
        return {key: expand_env_vars(item) for key, item in value.items()}
    return value


def _compile(name: str, source: str) -> Regexp:
    try:
        return Regexp.compile(source)
    except re.error as e:
        raise ConfigValidationError(
            f"Invalid regular expression for {name}",
            errors=[f"{name}: {e}"],
        ) from e


def parameters_from_dict(data: dict[str, Any]) -> RenderParameters:
    """
    Create render parameters from a dictionary.

    Args:
        data: Dictionary containing parameter values

    Returns:
        RenderParameters instance

    Raises:
        ConfigValidationError: If a regular expression is not valid RE2, or
            the fallback job name clashes with the cluster job
    """
    fallback_data = data.get("tls_fallback") or {}
    fallback = TLSFallbackPolicy()
    if fallback_data:
        pod_name_regex = fallback_data.get("pod_name_regex")
        try:
            fallback = TLSFallbackPolicy(
                enabled=fallback_data.get("enabled", fallback.enabled),
                job_name=fallback_data.get("job_name", fallback.job_name),
                pod_name_regex=(
                    _compile("tls_fallback.pod_name_regex", pod_name_regex)
                    if pod_name_regex else None
                ),
            )
        except ValueError as e:
            raise ConfigValidationError(
                "Invalid TLS fallback policy",
                errors=[f"tls_fallback.job_name: {e}"],
            ) from e

    return RenderParameters(
        alertmanager_url=data.get("alertmanager_url", ""),
        namespaces=data.get("namespaces", DEFAULT_NAMESPACES),
        target_regex=_compile("target_regex", data.get("target_regex", DEFAULT_TARGET_REGEX)),
        enable_tls=data.get("enable_tls", False),
        tls_fallback=fallback,
    )


def read_parameters_file(path: Path | str, validate: bool = True) -> dict[str, Any]:
    """
    Read a YAML parameter file.

    Args:
        path: Path to the YAML file
        validate: Whether to validate the content against the schema

    Returns:
        Parameter dictionary with environment variables expanded

    Raises:
        FileNotFoundError: If the file doesn't exist
        yaml.YAMLError: If the YAML is invalid
        ConfigValidationError: If the file is not UTF-8, is not a mapping,
            or fails validation
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Parameter file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except UnicodeDecodeError as e:
        raise ConfigValidationError(
            f"Parameter file is not valid UTF-8: {path}",
            errors=[f"root: {e}"],
        ) from e

    if not isinstance(data, dict):
        raise ConfigValidationError(
            "Parameter file must contain a mapping",
            errors=[f"root: expected a mapping, got {type(data).__name__}"],
        )

    if validate:
        errors = validate_parameters(data)
        if errors:
            raise ConfigValidationError(
                f"Parameter validation failed with {len(errors)} error(s)",
                errors=errors,
            )

    logger.debug("Loaded render parameters from %s", path)
    return expand_env_vars(data)


def load_parameters(
    config_path: Optional[Path | str] = None,
    alertmanager_url: Optional[str] = None,
    namespaces: Optional[Sequence[str]] = None,
    target_regex: Optional[str] = None,
    enable_tls: Optional[bool] = None,
    validate: bool = True,
) -> RenderParameters:
    """
    Load and merge render parameters from file and CLI arguments.

    Arguments left as ``None`` (or an empty namespace list) keep the file
    value, or the default when no file is given.

    Args:
        config_path: Path to YAML parameter file (optional)
        alertmanager_url: Alertmanager address override
        namespaces: Namespace list override
        target_regex: Instance label regex override
        enable_tls: TLS override
        validate: Whether to validate the parameter file

    Returns:
        RenderParameters with merged values
    """
    data: dict[str, Any] = {}
    if config_path:
        data = read_parameters_file(config_path, validate=validate)

    if alertmanager_url is not None:
        data["alertmanager_url"] = alertmanager_url
    if namespaces:
        data["namespaces"] = list(namespaces)
    if target_regex is not None:
        data["target_regex"] = target_regex
    if enable_tls is not None:
        data["enable_tls"] = enable_tls

    return parameters_from_dict(data)
