import json
import os

import jsonschema

from .exceptions import ConfigError

DEFAULT_CONFIG_PATH = "rds-port-forward.json"

# Decimal 1-65535 without leading zeros
PORT_PATTERN = (
    "^([1-9][0-9]{0,3}|[1-5][0-9]{4}|6[0-4][0-9]{3}"
    "|65[0-4][0-9]{2}|655[0-2][0-9]|6553[0-5])$"
)

_STRING = {"type": "string", "minLength": 1}
_PORT = {
    "oneOf": [
        {"type": "integer", "minimum": 1, "maximum": 65535},
        {"type": "string", "pattern": PORT_PATTERN},
    ]
}


class ConfigLoader:
    """Loads default CLI arguments from a JSON file."""

    SCHEMA = {
        "type": "object",
        "properties": {
            "cluster": _STRING,
            "service": _STRING,
            "container": _STRING,
            "db-host": _STRING,
            "db-host-from-container-env": _STRING,
            "port": _PORT,
            "local-port": _PORT,
            "profile": _STRING,
            "region": _STRING,
            "verbose": {"type": "boolean"},
        },
        "additionalProperties": False,
        "not": {"required": ["db-host", "db-host-from-container-env"]},
    }

    def __init__(self, config_path=None):
        self.explicit = config_path is not None
        self.config_path = config_path or DEFAULT_CONFIG_PATH

    def validate_schema(self, config):
        try:
            jsonschema.validate(instance=config, schema=self.SCHEMA)
        except jsonschema.exceptions.ValidationError as e:
            if e.validator == "not":
                raise ConfigError(
                    "Configuration validation failed: 'db-host' and "
                    "'db-host-from-container-env' cannot be used together"
                )
            raise ConfigError(f"Configuration validation failed: {e.message}")

    @staticmethod
    def normalize(config):
        return {
            key: value if isinstance(value, bool) else str(value)
            for key, value in config.items()
        }

    def load_config(self):
        """Return the configured defaults, or an empty dict when there is no file."""
        if not os.path.exists(self.config_path):
            if self.explicit:
                raise ConfigError(f"Config file {self.config_path} does not exist")
            return {}

        with open(self.config_path, "r") as f:
            try:
                config = json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigError(f"Failed to parse JSON config: {e}")

        self.validate_schema(config)
        return self.normalize(config)
