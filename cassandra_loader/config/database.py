from typing import Optional, Sequence

from cassandra import DriverException
from cassandra.cluster import Cluster, NoHostAvailable
from loguru import logger

from cassandra_loader.models.errors import ConnectionFailedError


class CassandraConnection:
    def __init__(self, hosts: Optional[Sequence[str]] = None, port: int = 9042,
                 keyspace: Optional[str] = None):
        self.hosts = list(hosts or ["127.0.0.1"])
        self.port = port
        self.keyspace = keyspace
        self.cluster = None
        self.session = None

    def connect(self):
        try:
            # unresolvable contact points fail in the constructor
            self.cluster = Cluster(contact_points=self.hosts, port=self.port)
            self.session = self.cluster.connect()
        except (NoHostAvailable, DriverException) as e:
            self.close()
            raise ConnectionFailedError(
                f"Cannot connect to Cassandra at {self.hosts}:{self.port}: {e}"
            ) from e
        logger.success(f"Connected to Cassandra: {self.hosts}:{self.port}")

        if self.keyspace:
            self.session.set_keyspace(self.keyspace)
            logger.success(f"Active keyspace: {self.keyspace}")

        return self.session

    def close(self):
        if self.cluster:
            self.cluster.shutdown()
            self.cluster = None
            self.session = None
            logger.info("Cassandra connection closed")

    def __enter__(self):
        return self.connect()

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
