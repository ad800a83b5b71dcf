import os
import shutil
import socket
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml
from loguru import logger

from cassandra_loader.config.settings import LoaderSettings
from cassandra_loader.models.errors import EmbeddedStartupError

DEFAULT_NATIVE_HOST = "127.0.0.1"
DEFAULT_NATIVE_PORT = 9042
DEFAULT_STARTUP_TIMEOUT_MILLIS = 20000

# cassandra.yaml keys redirected into the working directory
DIRECTORY_SETTINGS = {
    "data_file_directories": ["data"],
    "commitlog_directory": "commitlog",
    "saved_caches_directory": "saved_caches",
    "hints_directory": "hints",
}


@dataclass
class EmbeddedServer:
    host: str
    port: int
    work_dir: Optional[Path] = None
    pid: Optional[int] = None


def read_config(config_file: Path) -> Dict[str, Any]:
    try:
        config = yaml.safe_load(Path(config_file).read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as e:
        raise EmbeddedStartupError(f"Cannot read Cassandra configuration {config_file}: {e}") from e
    except yaml.YAMLError as e:
        raise EmbeddedStartupError(f"Malformed Cassandra configuration {config_file}: {e}") from e
    if not isinstance(config, dict):
        raise EmbeddedStartupError(f"Cassandra configuration {config_file} is not a mapping")
    return config


def native_endpoint(config: Dict[str, Any]) -> Tuple[str, int]:
    host = config.get("rpc_address") or DEFAULT_NATIVE_HOST
    if host in ("0.0.0.0", "::"):
        host = DEFAULT_NATIVE_HOST
    return str(host), int(config.get("native_transport_port") or DEFAULT_NATIVE_PORT)


def rewrite_directories(config: Dict[str, Any], work_dir: Path) -> Dict[str, Any]:
    rewritten = dict(config)
    for key, value in DIRECTORY_SETTINGS.items():
        if isinstance(value, list):
            rewritten[key] = [str(work_dir / v) for v in value]
        else:
            rewritten[key] = str(work_dir / value)
    return rewritten


def is_listening(host: str, port: int, timeout: float = 1.0) -> bool:
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False


class EmbeddedCassandraLauncher:
    """Starts a throwaway local Cassandra from a cassandra.yaml.

    The server runs from ``<work_root>/<identifier>``, which is wiped before
    every start, and keeps running once the launcher returns.
    """

    def __init__(self, cassandra_home: Optional[str] = None, work_root: Optional[Path] = None,
                 poll_interval: float = 0.5):
        self.cassandra_home = cassandra_home
        self.work_root = Path(work_root) if work_root else LoaderSettings.work_root
        self.poll_interval = poll_interval

    def start(self, config_file: Path, identifier: str, timeout_millis: int) -> EmbeddedServer:
        config = read_config(config_file)
        host, port = native_endpoint(config)

        if is_listening(host, port):
            logger.warning(f"Cassandra already listening on {host}:{port}, not starting another one")
            return EmbeddedServer(host=host, port=port)

        executable = self._executable()
        work_dir = self._prepare_work_dir(identifier)
        config_copy = work_dir / "cassandra.yaml"
        try:
            config_copy.write_text(yaml.safe_dump(rewrite_directories(config, work_dir)), encoding="utf-8")
        except OSError as e:
            raise EmbeddedStartupError(f"Cannot write configuration copy {config_copy}: {e}") from e

        env = dict(os.environ)
        env["JVM_EXTRA_OPTS"] = " ".join(filter(None, [
            env.get("JVM_EXTRA_OPTS"),
            f"-Dcassandra.config={config_copy.resolve().as_uri()}",
            f"-Dcassandra.storagedir={work_dir}",
        ]))

        log_path = work_dir / "cassandra.log"
        logger.info(f"Starting embedded Cassandra from {config_file} in {work_dir}")
        try:
            with open(log_path, "ab") as log:
                process = subprocess.Popen(
                    [executable, "-f"],
                    cwd=work_dir,
                    env=env,
                    stdout=log,
                    stderr=subprocess.STDOUT,
                    start_new_session=True,
                )
        except OSError as e:
            raise EmbeddedStartupError(f"Cannot start {executable}: {e}") from e
        try:
            (work_dir / "cassandra.pid").write_text(str(process.pid), encoding="utf-8")
        except OSError as e:
            self._stop(process)
            raise EmbeddedStartupError(f"Cannot write pid file in {work_dir}: {e}") from e

        self._wait_until_ready(process, host, port, timeout_millis, log_path)
        logger.success(f"✅ Embedded Cassandra ready on {host}:{port} (pid {process.pid})")
        return EmbeddedServer(host=host, port=port, work_dir=work_dir, pid=process.pid)

    def _executable(self) -> str:
        if self.cassandra_home:
            candidate = Path(self.cassandra_home) / "bin" / "cassandra"
            if candidate.is_file() and os.access(candidate, os.X_OK):
                return str(candidate)
            raise EmbeddedStartupError(f"No Cassandra executable at {candidate}")
        found = shutil.which("cassandra")
        if not found:
            raise EmbeddedStartupError("Cassandra executable not found, set CASSANDRA_HOME")
        return found

    def _prepare_work_dir(self, identifier: str) -> Path:
        work_dir = self.work_root / identifier
        try:
            if work_dir.exists():
                shutil.rmtree(work_dir)
            work_dir.mkdir(parents=True)
        except OSError as e:
            raise EmbeddedStartupError(f"Cannot prepare working directory {work_dir}: {e}") from e
        return work_dir

    def _wait_until_ready(self, process, host: str, port: int, timeout_millis: int,
                          log_path: Path) -> None:
        deadline = time.monotonic() + timeout_millis / 1000.0
        while True:
            code = process.poll()
            if code is not None:
                raise EmbeddedStartupError(
                    f"Cassandra exited with code {code} before becoming ready, see {log_path}"
                )
            if is_listening(host, port, timeout=max(self.poll_interval, 0.1)):
                return
            if time.monotonic() >= deadline:
                self._stop(process)
                raise EmbeddedStartupError(
                    f"Cassandra not ready on {host}:{port} after {timeout_millis} ms, see {log_path}"
                )
            time.sleep(self.poll_interval)

    @staticmethod
    def _stop(process) -> None:
        process.terminate()
        try:
            process.wait(timeout=10)
        except subprocess.TimeoutExpired:
            process.kill()
            process.wait()
