import sys
from typing import Optional, Sequence

from loguru import logger

from cassandra_loader.cli.options import report_usage, validate
from cassandra_loader.config.settings import LoaderSettings, configure_logging
from cassandra_loader.loaders.dispatcher import LoadDispatcher
from cassandra_loader.models.arguments import Reject
from cassandra_loader.models.errors import LoadError

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_LOAD_FAILED = 2


def main(argv: Optional[Sequence[str]] = None, dispatcher: Optional[LoadDispatcher] = None) -> int:
    outcome = validate(sys.argv[1:] if argv is None else argv)
    if isinstance(outcome, Reject):
        report_usage(outcome.message)
        return EXIT_USAGE

    dispatcher = dispatcher or LoadDispatcher()
    try:
        dispatcher.run(outcome.arguments)
    except LoadError as e:
        logger.error(f"❌ {e}")
        return EXIT_LOAD_FAILED
    return EXIT_OK


def run():
    configure_logging(LoaderSettings.from_env().log_level)
    sys.exit(main())


if __name__ == "__main__":
    run()
