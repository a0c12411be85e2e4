"""This module is responsible for creating and storing the configuration.

The default configuration is shipped as `constants/default.yaml` and can be updated with one or more other configuration
objects (user yaml, json dict passed on the command line, command line parameters).
The order of configs holds significance, with configurations later in the sequence overwriting previous values.
Lists are always overwritten completely.

On demand, the current config can be visualized in a tree-like structure.
"""

import logging
import os
from collections import UserDict, defaultdict
from copy import deepcopy

import yaml

from alphasite.constants.keys import ConfigKeys
from alphasite.exceptions import (
    ConfigurationError,
    KeyAddedConfigError,
    TypeMismatchConfigError,
)
from alphasite.utils import SUPPORTED_FILE_FORMATS

logger = logging.getLogger()

DEFAULT = "default"
USER_DEFINED = "user defined"
USER_DEFINED_CLI_PARAM = "user defined (cli)"

DEFAULT_CONFIG_PATH = os.path.join(
    os.path.dirname(os.path.dirname(__file__)), "constants", "default.yaml"
)


class Config(UserDict):
    """Dict-like config that is read from and written to yaml and layered with other configs via `update`."""

    def __init__(self, data: dict = None, name: str = DEFAULT) -> None:
        # super class deliberately not called as this calls "update" (which we overwrite)
        self.data = (
            {**data} if data is not None else {}
        )  # this needs to be called 'data' as we inherit from UserDict
        self.name = name

    def from_yaml(self, path: str) -> None:
        with open(path) as f:
            self.data = yaml.safe_load(f)

    def to_yaml(self, path: str) -> None:
        with open(path, "w") as f:
            yaml.dump(self.data, f, sort_keys=False)

    def __setitem__(self, key, item):
        if key != ConfigKeys.OUTPUT_DIRECTORY:
            raise NotImplementedError("Use update() to update the config.")
        return super().__setitem__(key, item)

    def __delitem__(self, key):
        raise NotImplementedError("Use update() to update the config.")

    def copy(self):
        raise NotImplementedError("Use deepcopy() to copy the config.")

    def update(self, configs: list["Config"], do_print: bool = False):
        """Layer other configs on top of this one, the last config wins.

        The name of the config which set a value last is tracked per key, so that the printed tree shows where
        a non-default value comes from.

        Parameters
        ----------
        configs : list of configs
            Configs applied in order, e.g. user yaml, config dict and command line parameters.

        do_print : bool, optional
            Whether to log the resulting config as a tree. Default is False.
        """
        # we assume that self.data holds the default config
        default_config = deepcopy(self.data)

        def _recursive_defaultdict():
            return defaultdict(_recursive_defaultdict)

        tracking_dict = defaultdict(_recursive_defaultdict)

        current_config = deepcopy(self.data)
        for config in configs:
            logger.info(f"Updating config with '{config.name}'")

            _update(
                current_config,
                config.data,
                tracking_dict,
                config.name,
            )

        self.data = current_config

        if do_print:
            try:
                _pretty_print(
                    current_config,
                    default_config=default_config,
                    tracking_dict=tracking_dict,
                )
            except Exception as e:
                logger.warning(f"Could not print config: {e}")
                logger.info(f"{(yaml.dump(current_config))}")

    def validate(self) -> None:
        """Check value ranges which cannot be expressed by the default types.

        Raises
        ------
        ConfigurationError
            If a value is out of range.
        """
        localization = self.data[ConfigKeys.LOCALIZATION]
        general = self.data[ConfigKeys.GENERAL]

        if localization[ConfigKeys.MIN_SCORE] < 0:
            raise ConfigurationError(
                f"'{ConfigKeys.LOCALIZATION}.{ConfigKeys.MIN_SCORE}' must not be negative, "
                f"got {localization[ConfigKeys.MIN_SCORE]}."
            )
        if localization[ConfigKeys.TOLERANCE] < 0:
            raise ConfigurationError(
                f"'{ConfigKeys.LOCALIZATION}.{ConfigKeys.TOLERANCE}' must not be negative, "
                f"got {localization[ConfigKeys.TOLERANCE]}."
            )
        if general[ConfigKeys.THREAD_COUNT] < 1:
            raise ConfigurationError(
                f"'{ConfigKeys.GENERAL}.{ConfigKeys.THREAD_COUNT}' must be at least 1, "
                f"got {general[ConfigKeys.THREAD_COUNT]}."
            )
        if (
            file_format := self.data[ConfigKeys.OUTPUT][ConfigKeys.FILE_FORMAT]
        ) not in SUPPORTED_FILE_FORMATS:
            raise ConfigurationError(
                f"'{ConfigKeys.OUTPUT}.{ConfigKeys.FILE_FORMAT}' must be one of {SUPPORTED_FILE_FORMATS}, "
                f"got '{file_format}'."
            )


def load_default_config() -> Config:
    """Load the default config shipped with the package."""
    config = Config(name=DEFAULT)
    config.from_yaml(DEFAULT_CONFIG_PATH)
    return config


def _update(
    target_config: dict,
    update_config: dict,
    tracking_dict: dict,
    config_name: str,
    parent_keys: str = "",
) -> None:
    """
    Recursively update target_dict in-place with values from update_dict, following specific rules for different types.

    For each value that gets updated, the corresponding value in tracking_dict is updated with config_name.

    Parameters
    ----------
    target_config:
        The config dictionary to be modified
    update_config:
        The config dictionary containing update values
    tracking_dict:
        A dictionary of nested dictionaries.
        If a value target_config gets overwritten, the same value in tracking_dict will be overwritten with `config_name`.
    config_name:
        The name of the current config object
    parent_keys:
        Names of the parent keys, separated by dots. Used only for exception messages.

    Notes
    -----
    - Nested dictionaries are recursively updated
    - Only updates existing keys (adding new keys not allowed)
    - lists are always overwritten
    - numeric values may switch between int and float, None defaults accept any type

    Raises
    ------
    - KeyAddedConfigError: a key is not found in the target_config
    - TypeMismatchConfigError: the type of the update value does not match the type of the target value
    """
    for key, update_value in update_config.items():
        full_key = f"{parent_keys}.{key}" if parent_keys else key

        if key not in target_config:
            raise KeyAddedConfigError(full_key, update_value, config_name)

        target_value = target_config[key]
        tracking_value = tracking_dict[key]

        # Convert string "true"/"false" to boolean to avoid type mismatch errors (especially from --config-dict CLI parameter)
        if isinstance(update_value, str):
            if update_value.lower() == "true":
                update_value = True
            elif update_value.lower() == "false":
                update_value = False

        if (
            target_value is not None
            and type(target_value) != type(update_value)
            and not (
                isinstance(target_value, int | float)
                and isinstance(update_value, int | float)
                and not isinstance(target_value, bool)
                and not isinstance(update_value, bool)
            )
        ):
            raise TypeMismatchConfigError(
                full_key,
                update_value,
                config_name,
                f"{type(update_value)} != {type(target_value)}",
            )

        if isinstance(target_value, dict):
            _update(
                target_value,
                update_value,
                tracking_value,
                config_name,
                parent_keys=full_key,
            )

        else:
            # lists and simple values are overwritten completely
            target_config[key] = update_value
            tracking_dict[key] = config_name


CHANGED_VALUE_STYLE = "\x1b[32;20m"
RESET_STYLE = "\x1b[0m"


def _pretty_print(
    config: dict,
    *,
    default_config: dict | None,
    tracking_dict: dict | str,
    prefix: str = "",
):
    """Log the config as a tree, values differing from the default are highlighted together with their source."""
    items = list(config.items())
    for i, (key, value) in enumerate(items):
        is_last_item = i == len(items) - 1
        branch = "└──" if is_last_item else "├──"
        child_prefix = prefix + ("    " if is_last_item else "│   ")

        default_value = (
            default_config.get(key) if isinstance(default_config, dict) else None
        )
        source = (
            tracking_dict
            if isinstance(tracking_dict, str)
            else tracking_dict.get(key, DEFAULT)
        )

        if isinstance(value, dict):
            logger.info(f"{prefix}{branch}{key}")
            _pretty_print(
                value,
                default_config=default_value,
                tracking_dict=source,
                prefix=child_prefix,
            )
            continue

        style, reset = (
            ("", "") if value == default_value else (CHANGED_VALUE_STYLE, RESET_STYLE)
        )

        if isinstance(value, list):
            logger.info(f"{prefix}{style}{branch}{key}:{reset}")
            for item in value:
                logger.info(f"{child_prefix}{style}- {item}{reset}")
        else:
            logger.info(
                f"{prefix}{style}{branch}{key}: {_describe_value(value, default_value, source)}{reset}"
            )


def _describe_value(value, default_value, source: str) -> str:
    if value == default_value:
        return str(value)
    return f"{value} [{source}, default: {default_value}]"
