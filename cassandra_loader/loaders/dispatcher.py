from pathlib import Path
from typing import Callable, Dict, Optional

import click
from loguru import logger

from cassandra_loader.config.database import CassandraConnection
from cassandra_loader.config.settings import LoaderSettings
from cassandra_loader.embedded.server import DEFAULT_STARTUP_TIMEOUT_MILLIS, EmbeddedCassandraLauncher
from cassandra_loader.loaders.cql_script import load_cql
from cassandra_loader.loaders.files import file_extension
from cassandra_loader.loaders.fixture import FixtureLoader
from cassandra_loader.models.arguments import LoadMode, ParsedArguments, parse_integer
from cassandra_loader.models.errors import EmbeddedStartupError, LoadError

CQL_FILE_EXTENSION = "cql"
EMBEDDED_IDENTIFIER = "temp"

START_MESSAGE = "Start Loading..."
COMPLETED_MESSAGE = "Loading completed"


def select_mode(path: Optional[str]) -> LoadMode:
    if file_extension(path) == CQL_FILE_EXTENSION:
        return LoadMode.RAW_CQL
    return LoadMode.STRUCTURED


class LoadDispatcher:
    """Runs one of the three loading strategies for validated arguments.

    ``-y`` starts an embedded server; otherwise the data file is loaded into
    ``host:port`` as a raw CQL script (``.cql``) or as a structured dataset.
    """

    def __init__(self, connection_factory: Callable[..., CassandraConnection] = CassandraConnection,
                 loaders: Optional[Dict[LoadMode, Callable]] = None,
                 launcher=None, settings: Optional[LoaderSettings] = None):
        settings = settings or LoaderSettings.from_env()
        self.connection_factory = connection_factory
        self.loaders = loaders or {
            LoadMode.RAW_CQL: load_cql,
            LoadMode.STRUCTURED: FixtureLoader().load,
        }
        self.launcher = launcher or EmbeddedCassandraLauncher(
            cassandra_home=settings.cassandra_home, work_root=settings.work_root
        )

    def run(self, arguments: ParsedArguments) -> None:
        click.echo(START_MESSAGE)
        if arguments.yaml is not None:
            self.start_embedded(arguments.yaml, arguments.timeout)
            return

        mode = select_mode(arguments.file)
        self.load(arguments.host, arguments.port, arguments.file, mode)
        click.echo(COMPLETED_MESSAGE)

    def start_embedded(self, yaml_file: str, timeout: Optional[str]):
        if timeout is None:
            timeout_millis = DEFAULT_STARTUP_TIMEOUT_MILLIS
        else:
            timeout_millis = parse_integer(timeout, bits=64)
            if timeout_millis is None:
                raise EmbeddedStartupError(f"Bad timeout value: {timeout!r}")
        return self.launcher.start(Path(yaml_file), EMBEDDED_IDENTIFIER, timeout_millis)

    def load(self, host: Optional[str], port: Optional[str], file: Optional[str], mode: LoadMode) -> None:
        missing = [name for name, value in (("file", file), ("host", host), ("port", port)) if value is None]
        if missing:
            raise LoadError(f"Missing required option(s): {', '.join(missing)}")
        port_number = parse_integer(port)
        if port_number is None:
            raise LoadError(f"Bad port value: {port!r}")

        logger.info(f"Loading {file} into {host}:{port_number} ({mode.value})")
        with self.connection_factory(hosts=[host], port=port_number) as session:
            self.loaders[mode](session, file)
