from typing import Optional, Sequence

import click

from cassandra_loader.models.arguments import (
    ParsedArguments,
    Proceed,
    Reject,
    ValidationOutcome,
    parse_integer,
)

PROG = "cassandra-loader"
USAGE_WIDTH = 100
BAD_REPLICATION_FACTOR = "Bad argument value for option r"

# f/h/p are documented as required but not enforced by the parser.
# Options accept repeats so that the first value can win, as in commons-cli.
SCHEMA = click.Command(
    PROG,
    help="Load a CQL script or a dataset into a Cassandra cluster, "
         "or start an embedded Cassandra from a cassandra.yaml.",
    add_help_option=False,
    context_settings={"allow_extra_args": True},
    params=[
        click.Option(["-f", "--file"], metavar="<arg>", multiple=True, help="dataset to load"),
        click.Option(["-h", "--host"], metavar="<arg>", multiple=True, help="target host (required)"),
        click.Option(["-p", "--port"], metavar="<arg>", multiple=True, help="target port (required)"),
        click.Option(["-y", "--yaml"], metavar="<arg>", multiple=True, help="yaml file (required)"),
        click.Option(["-t", "--timeout"], metavar="<arg>", multiple=True, help="start up timeout (required)"),
        click.Option(["-r", "--replication-factor"], metavar="<arg>", multiple=True, hidden=True),
    ],
)


def is_bad_replication_factor(value: Optional[str]) -> bool:
    if value is None or not value.strip():
        return False
    return parse_integer(value) is None


def validate(argv: Sequence[str]) -> ValidationOutcome:
    try:
        ctx = SCHEMA.make_context(PROG, list(argv))
    except click.UsageError as e:
        return Reject(e.format_message())

    arguments = ParsedArguments.from_params(ctx.params)
    if arguments.supplied() == 0:
        return Reject()
    if is_bad_replication_factor(arguments.replication_factor):
        return Reject(BAD_REPLICATION_FACTOR)
    return Proceed(arguments)


def report_usage(message: Optional[str] = None) -> None:
    if message:
        click.echo(message)
    ctx = click.Context(SCHEMA, info_name=PROG, terminal_width=USAGE_WIDTH,
                        max_content_width=USAGE_WIDTH)
    click.echo(SCHEMA.get_help(ctx))
