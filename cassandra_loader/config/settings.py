import os
import sys
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from loguru import logger

LOG_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}"


@dataclass(frozen=True)
class LoaderSettings:
    cassandra_home: Optional[str] = None
    work_root: Path = Path(tempfile.gettempdir()) / "cassandra-loader"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "LoaderSettings":
        work_root = os.environ.get("CASSANDRA_LOADER_WORKDIR")
        return cls(
            cassandra_home=os.environ.get("CASSANDRA_HOME") or None,
            work_root=Path(work_root) if work_root else cls.work_root,
            log_level=os.environ.get("CASSANDRA_LOADER_LOG_LEVEL", cls.log_level).upper(),
        )


def configure_logging(level: str = "INFO") -> None:
    logger.remove()
    logger.add(sys.stderr, level=level, format=LOG_FORMAT)
