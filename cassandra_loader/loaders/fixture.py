import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

import yaml
from cassandra import DriverException
from cassandra.cluster import NoHostAvailable
from loguru import logger

from cassandra_loader.loaders.cql_script import execute_statements, read_statements
from cassandra_loader.loaders.files import file_extension
from cassandra_loader.models.errors import FixtureError

DEFAULT_KEYSPACE = "cassandraunitkeyspace"
SIMPLE_STRATEGY = "SimpleStrategy"
NETWORK_TOPOLOGY_STRATEGY = "NetworkTopologyStrategy"

YAML_EXTENSIONS = ("yaml", "yml")
JSON_EXTENSIONS = ("json",)

_IDENTIFIER = re.compile(r"[A-Za-z][A-Za-z0-9_]*")


@dataclass
class Column:
    name: str
    type: str


@dataclass
class Table:
    name: str
    columns: List[Column]
    partition_key: List[str]
    clustering_columns: List[str] = field(default_factory=list)
    rows: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class DataSet:
    keyspace: str = DEFAULT_KEYSPACE
    replication_factor: int = 1
    strategy: str = SIMPLE_STRATEGY
    datacenters: Dict[str, int] = field(default_factory=dict)
    tables: List[Table] = field(default_factory=list)


def _identifier(value: Any, what: str) -> str:
    if not isinstance(value, str) or not _IDENTIFIER.fullmatch(value):
        raise FixtureError(f"Invalid {what} name: {value!r}")
    return value


def _positive_int(value: Any, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise FixtureError(f"{what} must be a positive integer, got {value!r}")
    return value


def _name_list(value: Any, what: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        raise FixtureError(f"{what} must be a list of column names")
    return [_identifier(v, "column") for v in value]


def _parse_table(data: Any) -> Table:
    if not isinstance(data, dict):
        raise FixtureError("Each table must be a mapping")
    name = _identifier(data.get("name"), "table")

    raw_columns = data.get("columns")
    if not isinstance(raw_columns, list) or not raw_columns:
        raise FixtureError(f"Table {name}: 'columns' must be a non-empty list")
    columns = []
    for raw in raw_columns:
        if not isinstance(raw, dict) or not isinstance(raw.get("type"), str):
            raise FixtureError(f"Table {name}: each column needs a name and a type")
        columns.append(Column(name=_identifier(raw.get("name"), "column"), type=raw["type"]))
    declared = {c.name for c in columns}

    partition_key = _name_list(data.get("partitionKey"), f"Table {name}: partitionKey")
    if not partition_key:
        partition_key = [columns[0].name]
    clustering = _name_list(data.get("clusteringColumns"), f"Table {name}: clusteringColumns")
    unknown = [c for c in partition_key + clustering if c not in declared]
    if unknown:
        raise FixtureError(f"Table {name}: undeclared key columns {unknown}")

    rows = data.get("rows") or []
    if not isinstance(rows, list):
        raise FixtureError(f"Table {name}: 'rows' must be a list")
    for row in rows:
        if not isinstance(row, dict):
            raise FixtureError(f"Table {name}: each row must be a mapping")
        extra = sorted(set(row) - declared)
        if extra:
            raise FixtureError(f"Table {name}: row uses undeclared columns {extra}")

    return Table(name=name, columns=columns, partition_key=partition_key,
                 clustering_columns=clustering, rows=rows)


def parse_dataset(data: Any) -> DataSet:
    if not isinstance(data, dict):
        raise FixtureError("Dataset must be a mapping")

    strategy = str(data.get("strategy", SIMPLE_STRATEGY)).rsplit(".", 1)[-1]
    if strategy not in (SIMPLE_STRATEGY, NETWORK_TOPOLOGY_STRATEGY):
        raise FixtureError(f"Unsupported replication strategy: {strategy}")

    datacenters = {}
    if strategy == NETWORK_TOPOLOGY_STRATEGY:
        raw = data.get("datacenters")
        if not isinstance(raw, dict) or not raw:
            raise FixtureError("NetworkTopologyStrategy requires a 'datacenters' mapping")
        datacenters = {str(dc): _positive_int(rf, f"Replication factor of {dc}") for dc, rf in raw.items()}

    tables = data.get("tables") or []
    if not isinstance(tables, list):
        raise FixtureError("'tables' must be a list")

    return DataSet(
        keyspace=_identifier(data.get("keyspace", DEFAULT_KEYSPACE), "keyspace"),
        replication_factor=_positive_int(data.get("replicationFactor", 1), "replicationFactor"),
        strategy=strategy,
        datacenters=datacenters,
        tables=[_parse_table(t) for t in tables],
    )


def read_dataset(path: str) -> DataSet:
    extension = file_extension(path).lower()
    try:
        text = Path(path).read_text(encoding="utf-8")
        if extension in JSON_EXTENSIONS:
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (OSError, UnicodeDecodeError) as e:
        raise FixtureError(f"Cannot read {path}: {e}") from e
    except (ValueError, yaml.YAMLError) as e:
        raise FixtureError(f"Malformed dataset {path}: {e}") from e
    return parse_dataset(data)


def replication_map(strategy: str, replication_factor: int, datacenters: Dict[str, int]) -> str:
    if strategy == NETWORK_TOPOLOGY_STRATEGY:
        dcs = ", ".join(f"'{dc}': {rf}" for dc, rf in datacenters.items())
        return f"{{'class': '{strategy}', {dcs}}}"
    return f"{{'class': '{strategy}', 'replication_factor': {replication_factor}}}"


def keyspace_statements(keyspace: str, replication: str) -> List[str]:
    return [
        f"DROP KEYSPACE IF EXISTS {keyspace}",
        f"CREATE KEYSPACE {keyspace} WITH replication = {replication}",
    ]


def create_table_statement(table: Table) -> str:
    columns = ", ".join(f"{c.name} {c.type}" for c in table.columns)
    partition = ", ".join(table.partition_key)
    if len(table.partition_key) > 1:
        partition = f"({partition})"
    key = ", ".join([partition] + table.clustering_columns)
    return f"CREATE TABLE {table.name} ({columns}, PRIMARY KEY ({key}))"


def insert_statement(table: Table) -> str:
    return f"INSERT INTO {table.name} JSON ?"


class FixtureLoader:
    """Loads structured datasets.

    YAML and JSON files are declarative datasets (keyspace, tables, rows).
    Any other file is a CQL script run inside a freshly created keyspace.
    """

    def __init__(self, managed_keyspace: str = DEFAULT_KEYSPACE):
        self.managed_keyspace = managed_keyspace

    def load(self, session, path: str) -> None:
        extension = file_extension(path).lower()
        if extension in YAML_EXTENSIONS + JSON_EXTENSIONS:
            self._load_dataset(session, read_dataset(path))
        else:
            self._load_script(session, path)
        logger.success(f"✅ Dataset loaded: {path}")

    def _load_dataset(self, session, dataset: DataSet) -> None:
        replication = replication_map(dataset.strategy, dataset.replication_factor, dataset.datacenters)
        self._recreate_keyspace(session, dataset.keyspace, replication)

        for table in dataset.tables:
            self._execute(session, create_table_statement(table))
            if not table.rows:
                continue
            insert = self._prepare(session, insert_statement(table))
            for row in table.rows:
                self._execute(session, insert, (json.dumps(row, default=str),))
            logger.info(f"{len(table.rows)} rows inserted into {dataset.keyspace}.{table.name}")

    def _load_script(self, session, path: str) -> None:
        statements = read_statements(path, error_cls=FixtureError)
        replication = replication_map(SIMPLE_STRATEGY, 1, {})
        self._recreate_keyspace(session, self.managed_keyspace, replication)
        execute_statements(session, statements, path, error_cls=FixtureError)

    def _recreate_keyspace(self, session, keyspace: str, replication: str) -> None:
        for statement in keyspace_statements(keyspace, replication):
            self._execute(session, statement)
        try:
            session.set_keyspace(keyspace)
        except (DriverException, NoHostAvailable) as e:
            raise FixtureError(f"Cannot use keyspace {keyspace}: {e}") from e
        logger.info(f"Keyspace ready: {keyspace}")

    @staticmethod
    def _prepare(session, query: str):
        try:
            return session.prepare(query)
        except (DriverException, NoHostAvailable) as e:
            raise FixtureError(f"Cannot prepare '{query}': {e}") from e

    @staticmethod
    def _execute(session, statement, params=None) -> None:
        try:
            session.execute(statement, params)
        except (DriverException, NoHostAvailable) as e:
            raise FixtureError(f"Statement failed '{statement}': {e}") from e
