from pathlib import Path
from typing import List, Sequence, Type

from cassandra import DriverException
from cassandra.cluster import NoHostAvailable
from loguru import logger

from cassandra_loader.models.errors import LoadError, ScriptError


def split_statements(text: str) -> List[str]:
    """Split a CQL script into statements.

    Semicolons inside quoted strings, quoted identifiers and ``$$`` blocks do
    not end a statement. ``--``, ``//`` and ``/* */`` comments are dropped.
    """
    statements: List[str] = []
    current: List[str] = []
    i, n = 0, len(text)

    while i < n:
        ch = text[i]
        pair = text[i:i + 2]

        if pair in ("--", "//"):
            end = text.find("\n", i)
            i = n if end == -1 else end
            continue

        if pair == "/*":
            end = text.find("*/", i + 2)
            i = n if end == -1 else end + 2
            current.append(" ")
            continue

        if pair == "$$":
            end = text.find("$$", i + 2)
            stop = n if end == -1 else end + 2
            current.append(text[i:stop])
            i = stop
            continue

        if ch in ("'", '"'):
            j = i + 1
            while j < n:
                if text[j] == ch:
                    # '' (or "") is an escaped quote
                    if text[j + 1:j + 2] == ch:
                        j += 2
                        continue
                    break
                j += 1
            stop = min(j + 1, n)
            current.append(text[i:stop])
            i = stop
            continue

        if ch == ";":
            _flush(current, statements)
            current = []
            i += 1
            continue

        current.append(ch)
        i += 1

    _flush(current, statements)
    return statements


def _flush(chunks: List[str], statements: List[str]) -> None:
    statement = "".join(chunks).strip()
    if statement:
        statements.append(statement)


def read_statements(path: str, error_cls: Type[LoadError] = ScriptError) -> List[str]:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise error_cls(f"Cannot read {path}: {e}") from e
    return split_statements(text)


def execute_statements(session, statements: Sequence[str], source: str,
                       error_cls: Type[LoadError] = ScriptError) -> None:
    for number, statement in enumerate(statements, start=1):
        try:
            session.execute(statement)
        except (DriverException, NoHostAvailable) as e:
            raise error_cls(f"{source}: statement {number} failed: {e}") from e


def load_cql(session, path: str) -> None:
    statements = read_statements(path)
    logger.info(f"Executing {len(statements)} statements from {path}")
    execute_statements(session, statements, path)
    logger.success(f"✅ CQL script loaded: {path}")
