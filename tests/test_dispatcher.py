from pathlib import Path

import pytest

from cassandra_loader.loaders.dispatcher import (
    COMPLETED_MESSAGE,
    EMBEDDED_IDENTIFIER,
    START_MESSAGE,
    LoadDispatcher,
    select_mode,
)
from cassandra_loader.loaders.files import file_extension
from cassandra_loader.models.arguments import LoadMode, ParsedArguments
from cassandra_loader.models.errors import EmbeddedStartupError, FixtureError, LoadError


class RecordingLoader:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def __call__(self, session, path):
        self.calls.append((session, path))
        if self.error:
            raise self.error


class RecordingLauncher:
    def __init__(self):
        self.calls = []

    def start(self, config_file, identifier, timeout_millis):
        self.calls.append((config_file, identifier, timeout_millis))


@pytest.fixture
def cql_loader():
    return RecordingLoader()


@pytest.fixture
def fixture_loader():
    return RecordingLoader()


@pytest.fixture
def launcher():
    return RecordingLauncher()


@pytest.fixture
def dispatcher(connection_factory, cql_loader, fixture_loader, launcher):
    return LoadDispatcher(
        connection_factory=connection_factory,
        loaders={LoadMode.RAW_CQL: cql_loader, LoadMode.STRUCTURED: fixture_loader},
        launcher=launcher,
    )


@pytest.mark.parametrize("path, extension", [
    ("a/b/c.cql", "cql"),
    ("noext", ""),
    ("a.b.cql", "cql"),
    ("data.CQL", "CQL"),
    ("trailing.", ""),
    (None, ""),
])
def test_file_extension(path, extension):
    assert file_extension(path) == extension


def test_select_mode_is_case_sensitive():
    assert select_mode("data.cql") is LoadMode.RAW_CQL
    assert select_mode("data.CQL") is LoadMode.STRUCTURED


def test_cql_file_goes_to_script_loader(dispatcher, connection_factory, cql_loader, fixture_loader, capsys):
    dispatcher.run(ParsedArguments(file="data.cql", host="localhost", port="9042"))

    assert connection_factory.calls == [(["localhost"], 9042)]
    assert cql_loader.calls == [(connection_factory.session, "data.cql")]
    assert fixture_loader.calls == []
    assert connection_factory.closed
    assert capsys.readouterr().out.splitlines() == [START_MESSAGE, COMPLETED_MESSAGE]


@pytest.mark.parametrize("path", ["data.xml", "data.yaml", "dataset"])
def test_other_files_go_to_fixture_loader(dispatcher, connection_factory, cql_loader, fixture_loader, path):
    dispatcher.run(ParsedArguments(file=path, host="localhost", port="9042"))

    assert fixture_loader.calls == [(connection_factory.session, path)]
    assert cql_loader.calls == []


def test_yaml_starts_embedded_server(dispatcher, connection_factory, launcher, capsys):
    dispatcher.run(ParsedArguments(yaml="cassandra.yaml", timeout="5000"))

    assert launcher.calls == [(Path("cassandra.yaml"), EMBEDDED_IDENTIFIER, 5000)]
    assert connection_factory.calls == []
    assert capsys.readouterr().out.splitlines() == [START_MESSAGE]


def test_yaml_wins_over_remote_flags(dispatcher, connection_factory, launcher):
    dispatcher.run(ParsedArguments(file="data.cql", host="localhost", port="9042", yaml="cassandra.yaml"))
    assert len(launcher.calls) == 1
    assert connection_factory.calls == []


def test_embedded_default_timeout(dispatcher, launcher):
    dispatcher.run(ParsedArguments(yaml="cassandra.yaml"))
    assert launcher.calls[0][2] == 20000


@pytest.mark.parametrize("timeout", ["soon", " 5000 ", "5_000", "5000.0"])
def test_embedded_bad_timeout(dispatcher, launcher, timeout):
    with pytest.raises(EmbeddedStartupError, match="Bad timeout"):
        dispatcher.run(ParsedArguments(yaml="cassandra.yaml", timeout=timeout))
    assert launcher.calls == []


def test_missing_remote_flags_fail_before_connecting(dispatcher, connection_factory):
    with pytest.raises(LoadError, match="host, port"):
        dispatcher.run(ParsedArguments(file="data.cql"))
    assert connection_factory.calls == []


@pytest.mark.parametrize("port", ["ninety", " 9042", "9042 ", "9_042", "4294967296"])
def test_bad_port_fails(dispatcher, connection_factory, port):
    with pytest.raises(LoadError, match="Bad port"):
        dispatcher.run(ParsedArguments(file="data.cql", host="localhost", port=port))
    assert connection_factory.calls == []


def test_connection_released_when_load_fails(connection_factory, launcher, capsys):
    failing = RecordingLoader(error=FixtureError("bad dataset"))
    dispatcher = LoadDispatcher(
        connection_factory=connection_factory,
        loaders={LoadMode.RAW_CQL: RecordingLoader(), LoadMode.STRUCTURED: failing},
        launcher=launcher,
    )
    with pytest.raises(FixtureError):
        dispatcher.run(ParsedArguments(file="data.json", host="localhost", port="9042"))

    assert connection_factory.closed
    assert COMPLETED_MESSAGE not in capsys.readouterr().out


def test_long_timeout_is_accepted(dispatcher, launcher):
    dispatcher.run(ParsedArguments(yaml="cassandra.yaml", timeout="3000000000"))
    assert launcher.calls[0][2] == 3000000000
