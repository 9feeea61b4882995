#!/usr/bin/env python3

import sys
import argparse
import logging

import uvicorn
import sqlalchemy.exc

from crud_core import settings as _settings
from crud_core.api.api import create_app
from crud_core.misc.logger import configure_logging
from crud_core.persistence.database import Database
from crud_core.persistence.schema import build_schema, create_table


def get_parser(program: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=program)

    commands = parser.add_subparsers(
        description="Available sub-commands: init, run",
        dest="command",
        required=True,
        metavar="<command>",
        help="the sub-command to be executed"
    )

    parser_init = commands.add_parser(
        "init",
        description="Initialize the project by creating the config file and the tables of all resources"
    )
    parser_run = commands.add_parser(
        "run",
        description="Run 'uvicorn' ASGI server to serve the CRUD core REST API in a single process"
    )

    parser_init.add_argument(
        "--database",
        type=str,
        metavar="url",
        help="Database connection URL including scheme and auth"
    )
    parser_init.add_argument(
        "--no-tables",
        action="store_true",
        help="Don't create the tables of the configured resources"
    )

    parser_run.add_argument(
        "--host",
        type=str,
        metavar="host",
        help="Bind TCP socket to this host (overwrites config)"
    )
    parser_run.add_argument(
        "--port",
        type=int,
        metavar="port",
        help="Bind TCP socket to this port (overwrites config)"
    )
    parser_run.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging for all handlers"
    )
    parser_run.add_argument(
        "--debug-sql",
        action="store_true",
        help="Enable echoing of database actions (overwrites config)"
    )
    parser_run.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload"
    )
    parser_run.add_argument(
        "--no-access-log",
        action="store_true",
        help="Disable access logs"
    )
    parser_run.add_argument(
        "--root-path",
        type=str,
        default="",
        metavar="p",
        help="Sub-mount the application below the given path"
    )

    return parser


def init_project(args: argparse.Namespace) -> int:
    if _settings.find_config_file() is None:
        conf = _settings.get_default_core_config(_settings.get_db_from_env(args.database))
        _settings.store_configuration(conf)
    elif args.database:
        print(
            "A config file has been found and will be used. The '--database' option is ignored. "
            "If you want a fresh installation, you should remove the config file first.",
            file=sys.stderr
        )

    settings = _settings.Settings()
    configure_logging(settings.logging, settings.database.debug_sql)
    if args.no_tables:
        return 0

    logger = logging.getLogger("crud_core.init")
    database = Database.from_url(settings.database.connection, settings.database.debug_sql)
    try:
        for resource in settings.resources:
            schema = build_schema(resource.columns, database.dialect)
            create_table(database, resource.name, schema, resource.constraints, logger)
            logger.info(f"Table {resource.name!r} is ready.")
    except sqlalchemy.exc.SQLAlchemyError as exc:
        print(f"Creating the tables failed: {exc}", file=sys.stderr)
        return 1
    finally:
        database.dispose()

    print("Done.")
    return 0


def run_server(args: argparse.Namespace) -> int:
    settings = _settings.Settings()
    if args.debug:
        settings.logging.root["level"] = "DEBUG"
        for handler in settings.logging.handlers:
            settings.logging.handlers[handler]["level"] = "DEBUG"
    if args.debug_sql:
        settings.database.debug_sql = args.debug_sql

    port = args.port
    if port is None:
        port = settings.server.port
    host = args.host
    if host is None:
        host = settings.server.host

    app = None if args.reload else create_app(settings=settings)

    logging.getLogger("crud_core").info(f"Server running at host {host} port {port}")
    uvicorn.run(
        "crud_core.api.api:api.app" if args.reload else app,
        port=port,
        host=host,
        reload=args.reload,
        log_level="debug" if args.debug else "info",
        log_config=settings.logging.model_dump(),
        access_log=not args.no_access_log,
        proxy_headers=True,
        root_path=args.root_path
    )
    return 0


def main(program: str = "crud_core") -> int:
    args = get_parser(program).parse_args()
    return {
        "init": init_project,
        "run": run_server
    }[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
