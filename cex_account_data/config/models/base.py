"""
Base Configuration Model.

Frozen pydantic base for every configuration section, with environment
variable substitution and masking of credentials when printed.
"""

import os
import re
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, model_validator

from ...core.utils import mask_secret

# ${VAR} or ${VAR:default}
ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::([^}]*))?\}")


def substitute_env_vars(value: str) -> str:
    """
    Substitute environment variables in a string.

    Supports formats:
    - ${VAR} - substitutes with VAR value, empty if not set
    - ${VAR:default} - substitutes with VAR value, or 'default' if not set

    Args:
        value: String potentially containing env var references

    Returns:
        String with env vars substituted
    """

    def replace_match(match: re.Match) -> str:
        env_value = os.environ.get(match.group(1))
        if env_value is not None:
            return env_value
        return match.group(2) or ""

    return ENV_VAR_PATTERN.sub(replace_match, value)


def process_value(value: Any) -> Any:
    """Recursively substitute env vars in strings, dicts and lists."""
    if isinstance(value, str):
        return substitute_env_vars(value)
    elif isinstance(value, dict):
        return {k: process_value(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [process_value(item) for item in value]
    return value


class BaseConfig(BaseModel):
    """
    Base configuration model.

    Features:
    - Environment variable substitution: ${VAR} or ${VAR:default}
    - Credentials masked in repr/str
    - Immutable (frozen)

    Example:
        >>> class MyConfig(BaseConfig):
        ...     api_key: str
        ...
        >>> config = MyConfig(api_key="${BINANCE_KEY:}")
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        validate_default=True,
        str_strip_whitespace=True,
    )

    _sensitive_fields: ClassVar[set[str]] = {
        "api_key",
        "api_secret",
        "secret",
        "listen_key",
    }

    @model_validator(mode="before")
    @classmethod
    def substitute_environment_variables(cls, data: Any) -> Any:
        """Substitute environment variables in all string values."""
        if isinstance(data, dict):
            return process_value(data)
        return data

    def masked_dict(self) -> dict[str, Any]:
        """Dump the model with credentials masked."""
        return self._mask_sensitive(self.model_dump())

    def _mask_sensitive(self, data: dict[str, Any]) -> dict[str, Any]:
        result = {}
        for key, value in data.items():
            if self._is_sensitive_field(key) and isinstance(value, str) and value:
                result[key] = mask_secret(value)
            elif isinstance(value, dict):
                result[key] = self._mask_sensitive(value)
            elif isinstance(value, list):
                result[key] = [
                    self._mask_sensitive(item) if isinstance(item, dict) else item
                    for item in value
                ]
            else:
                result[key] = value
        return result

    def _is_sensitive_field(self, field_name: str) -> bool:
        field_lower = field_name.lower()
        return any(sensitive in field_lower for sensitive in self._sensitive_fields)

    def __repr__(self) -> str:
        fields = ", ".join(f"{k}={v!r}" for k, v in self.masked_dict().items())
        return f"{self.__class__.__name__}({fields})"

    def __str__(self) -> str:
        return self.__repr__()
