"""
CRUD core settings provider
"""

import os
import sys
import functools
from typing import Any, Callable, List, Optional, Tuple, Type

try:
    import ujson as json
except ImportError:
    import json

from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict
)

from .schemas import config


SETTINGS_LOG_INFO_FUNCTION: Optional[Callable[[str], Any]] = functools.partial(print, file=sys.stderr)
"""
optional function to accept log messages when creating a new configuration file
"""

CONFIG_PATHS: List[str] = ["config.json", os.path.join("..", "config.json")]
"""
list of search paths for the config file, can be overwritten by the env variable ``CONFIG_PATH``
"""

if os.environ.get("CONFIG_PATH"):
    CONFIG_PATHS = [os.environ.get("CONFIG_PATH")]


def get_db_from_env(db_override: Optional[str] = None) -> Optional[str]:
    if db_override:
        return db_override
    return os.environ.get("DATABASE_CONNECTION", os.environ.get("DATABASE__CONNECTION", None))


def find_config_file() -> Optional[str]:
    for path in CONFIG_PATHS:
        if os.path.exists(path):
            return path
    return None


class Settings(BaseSettings, config.CoreConfig):
    """
    CRUD core settings

    Do not change most of the settings at runtime, since this might lead to unspecified
    behavior. Always restart the server after changing the config file. The values are
    read from the environment (nested keys joined by ``__``, e.g. ``DATABASE__CONNECTION``),
    a ``.env`` file and the first existing JSON file of ``CONFIG_PATHS``, in that order.
    """

    model_config = SettingsConfigDict(env_nested_delimiter="__", env_file=".env", extra="ignore")

    @classmethod
    def settings_customise_sources(
            cls,
            settings_cls: Type[BaseSettings],
            init_settings: PydanticBaseSettingsSource,
            env_settings: PydanticBaseSettingsSource,
            dotenv_settings: PydanticBaseSettingsSource,
            file_secret_settings: PydanticBaseSettingsSource
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        sources = [init_settings, env_settings, dotenv_settings, file_secret_settings]
        path = find_config_file()
        if path is not None:
            sources.append(JsonConfigSettingsSource(settings_cls, json_file=path))
        return tuple(sources)


def get_default_core_config(database_override: Optional[str] = None) -> config.CoreConfig:
    c = config.CoreConfig()
    if database_override:
        c.database.connection = database_override
    return c


def store_configuration(conf: Optional[config.CoreConfig] = None, path: Optional[str] = None) -> config.CoreConfig:
    p = path or os.path.abspath(CONFIG_PATHS[0])
    conf = conf or get_default_core_config(get_db_from_env())
    with open(p, "w") as f:
        json.dump(conf.model_dump(mode="json"), f, indent=4)
    SETTINGS_LOG_INFO_FUNCTION and SETTINGS_LOG_INFO_FUNCTION(f"A new config file has been created as {p!r}.")
    return conf
