import re
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Dict, Optional, Union

_INTEGER = re.compile(r"[+-]?[0-9]+")


def parse_integer(value: Optional[str], bits: int = 32) -> Optional[int]:
    """Parse a signed decimal integer the way Java's parseInt/parseLong do.

    No surrounding whitespace, no underscores; out of range yields None.
    """
    if value is None or not _INTEGER.fullmatch(value):
        return None
    number = int(value)
    limit = 2 ** (bits - 1)
    return number if -limit <= number < limit else None


@dataclass(frozen=True)
class ParsedArguments:
    file: Optional[str] = None
    host: Optional[str] = None
    port: Optional[str] = None
    yaml: Optional[str] = None
    timeout: Optional[str] = None
    replication_factor: Optional[str] = None

    @classmethod
    def from_params(cls, params: Dict[str, Any]) -> "ParsedArguments":
        names = {f.name for f in fields(cls)}
        values = {}
        for key, value in params.items():
            if key not in names:
                continue
            # repeated flags: the first occurrence wins
            if isinstance(value, (tuple, list)):
                value = value[0] if value else None
            values[key] = value
        return cls(**values)

    def supplied(self) -> int:
        return sum(1 for f in fields(self) if getattr(self, f.name) is not None)


@dataclass(frozen=True)
class Proceed:
    arguments: ParsedArguments


@dataclass(frozen=True)
class Reject:
    message: Optional[str] = None


ValidationOutcome = Union[Proceed, Reject]


class LoadMode(Enum):
    RAW_CQL = "raw_cql"
    STRUCTURED = "structured"
