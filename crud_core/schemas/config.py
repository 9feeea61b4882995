"""
Special schemas for the configuration file and its properties
"""

from typing import Dict, List, Optional, Union

import pydantic

from .bases import ALL_METHODS, Method


class GeneralConfig(pydantic.BaseModel):
    default_limit: pydantic.PositiveInt = 10
    max_limit: pydantic.PositiveInt = 50


class ServerConfig(pydantic.BaseModel):
    host: str = "127.0.0.1"
    port: pydantic.conint(gt=0, lt=65536) = 8000
    public_base_url: Optional[str] = None
    """base URL used to build pagination and location links (default: URL of the request)"""


class DatabaseConfig(pydantic.BaseModel):
    connection: str = "sqlite://"
    debug_sql: bool = False
    create_tables: bool = False
    """switch to create missing tables of all configured resources at startup"""


class ResourceConfig(pydantic.BaseModel):
    name: pydantic.constr(pattern=r"^[A-Za-z_][A-Za-z0-9_]*$", max_length=63)
    prefix: Optional[str] = None
    columns: Dict[str, str]
    methods: List[Method] = ALL_METHODS
    schema_fields: Optional[List[str]] = None
    constraints: Optional[List[str]] = None

    @pydantic.field_validator("columns")
    @classmethod
    def enforce_plain_column_names(cls, value: Dict[str, str]):
        for name in value:
            if not name.isidentifier():
                raise ValueError(f"Invalid column name {name!r}")
            if name in ("id", "created_dt", "updated_dt"):
                raise ValueError(f"Column {name!r} is added automatically")
        return value


class LoggingConfig(pydantic.BaseModel):
    version: pydantic.conint(ge=1, le=1) = 1
    disable_existing_loggers: bool = False
    incremental: bool = False
    filters: Dict[str, Dict[str, Union[str, list]]] = {}
    formatters: Dict[str, Dict[str, str]] = {
        "default": {
            "style": "{",
            "format": "{asctime}: crud_core {process}: [{levelname}] {name}: {message}",
            "datefmt": "%d.%m.%Y %H:%M:%S"
        },
        "file": {
            "style": "{",
            "format": "{asctime} ({process}): [{levelname}] {name}: {message}",
            "datefmt": "%d.%m.%Y %H:%M"
        }
    }
    loggers: Dict[str, dict] = {}
    handlers: Dict[str, Dict[str, Union[str, list]]] = {
        "default": {
            "level": "INFO",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
            "formatter": "default"
        },
        "file": {
            "level": "DEBUG",
            "class": "logging.FileHandler",
            "filename": "./crud_core.log",
            "formatter": "file"
        }
    }
    root: dict = {
        "level": "INFO",
        "handlers": ["default", "file"]
    }


class CoreConfig(pydantic.BaseModel):
    general: GeneralConfig = GeneralConfig()
    server: ServerConfig = ServerConfig()
    database: DatabaseConfig = DatabaseConfig()
    logging: LoggingConfig = LoggingConfig()
    resources: List[ResourceConfig] = [ResourceConfig(name="ingredients", columns={"name": "TEXT"})]

    @pydantic.field_validator("resources")
    @classmethod
    def enforce_resource_constraints(cls, value: List[ResourceConfig]):
        if len({v.name.lower() for v in value}) != len(value):
            raise ValueError("Field 'name' must be unique")
        return value
