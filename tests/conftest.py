import pytest
from cassandra import DriverException
from loguru import logger


class FakeSession:
    def __init__(self, fail_on=None):
        self.fail_on = fail_on
        self.executed = []
        self.prepared = []
        self.keyspace = None

    def execute(self, statement, params=None):
        if self.fail_on and self.fail_on in str(statement):
            raise DriverException(f"rejected: {statement}")
        self.executed.append((statement, params))

    def prepare(self, query):
        self.prepared.append(query)
        return query

    def set_keyspace(self, keyspace):
        self.keyspace = keyspace

    @property
    def statements(self):
        return [statement for statement, _ in self.executed]


class FakeConnectionFactory:
    """Stands in for CassandraConnection: records calls, hands out a FakeSession."""

    def __init__(self):
        self.calls = []
        self.session = FakeSession()
        self.closed = False

    def __call__(self, hosts, port):
        self.calls.append((hosts, port))
        return self

    def __enter__(self):
        return self.session

    def __exit__(self, exc_type, exc, tb):
        self.closed = True
        return False


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def connection_factory():
    return FakeConnectionFactory()


@pytest.fixture
def log_messages():
    messages = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)
