"""
core/adapters/cli_adapter.py
----------------------------
Adapter that drives the repository command-line utility (``pmrep``).

Design Decisions:
    * Commands run strictly one after another: the utility keeps its
      connection in a per-user state file, so concurrent invocations are
      not assumed to be safe.
    * Output is free-form text. Each non-noise line is tokenized on tabs
      into a raw record; a line that does not fit its kind's layout is
      dropped and logged, never fatal.
    * The password is never placed on the command line. ``-X`` names the
      environment variable that holds it (``connection.credentials_ref``).
"""
from __future__ import annotations

import re
import subprocess
from typing import Any

from config import CONFIG
from core.adapters.base import RepositoryAdapter
from logger import get_logger
from shared.errors import RecordParseError, RepositoryConnectionError, RepositoryTimeoutError
from shared.models import ObjectKind, RawDiscoveryPayload, RepositoryConnection
from shared.utils import build_endpoint

log = get_logger(__name__)

# Minimum field count and field names per kind, in output column order
_FIELD_LAYOUTS: dict[ObjectKind, tuple[int, tuple[str, ...]]] = {
    ObjectKind.WORKFLOW: (3, ("name", "folder", "validity")),
    ObjectKind.MAPPING: (2, ("name", "folder")),
    ObjectKind.SESSION: (2, ("name", "folder", "mappingName")),
    ObjectKind.TRANSFORMATION: (3, ("name", "folder", "type", "mappingName")),
    ObjectKind.SOURCE: (3, ("name", "folder", "type", "connectionName")),
    ObjectKind.TARGET: (3, ("name", "folder", "type", "connectionName")),
}

# Banner, status and footer lines the utility prints around its results
_NOISE = re.compile(
    r"^(informatica\b|copyright|this software|invoked at|connected to|completed at|"
    r"\.?\w+ completed successfully|-+$)",
    re.IGNORECASE,
)


def parse_listing(kind: ObjectKind, output: str) -> list[dict[str, Any]]:
    """
    Tokenize ``listobjects`` output into raw records.

    Args:
        kind:   Object kind the listing was requested for.
        output: Captured stdout of the command.

    Returns:
        One dict per well-formed line. Malformed lines are skipped.
    """
    records: list[dict[str, Any]] = []
    for line in output.splitlines():
        stripped = line.strip()
        if not stripped or ("\t" not in line and _NOISE.match(stripped)):
            continue
        try:
            records.append(parse_line(kind, line))
        except RecordParseError as exc:
            log.warning("Dropped malformed %s line: %s", kind.value.lower(), exc)
    return records


def parse_line(kind: ObjectKind, line: str) -> dict[str, Any]:
    """
    Tokenize one tab-separated output line.

    Raises:
        RecordParseError: If the line has too few fields or no name.
    """
    min_fields, names = _FIELD_LAYOUTS[kind]
    parts = [part.strip() for part in line.rstrip("\r\n").split("\t")]
    if len(parts) < min_fields:
        raise RecordParseError(
            f"expected at least {min_fields} tab-separated fields, got {len(parts)}", raw=line
        )
    if not parts[0]:
        raise RecordParseError("missing object name", raw=line)

    record: dict[str, Any] = {name: value for name, value in zip(names, parts)}
    record["rawOutput"] = line.rstrip("\r\n")

    if kind == ObjectKind.WORKFLOW:
        record["isValid"] = record.pop("validity").lower() == "valid"
        record.setdefault("sessions", [])
        record.setdefault("dependencies", [])
    elif kind == ObjectKind.MAPPING:
        record.setdefault("transformations", [])
        record.setdefault("sources", [])
        record.setdefault("targets", [])
    elif kind == ObjectKind.SESSION:
        record["sessionType"] = "session"
    elif kind == ObjectKind.TRANSFORMATION:
        record["type"] = record["type"] or "unknown"
        record.setdefault("expressions", [])
    return record


class CliRepositoryAdapter(RepositoryAdapter):
    """Repository adapter driving the ``pmrep`` command-line protocol."""

    def __init__(self, timeout: float | None = None, executable: str | None = None) -> None:
        super().__init__(timeout)
        self.executable = executable or CONFIG.adapter.pmrep_executable

    def connect_command(self, connection: RepositoryConnection) -> list[str]:
        command = [
            self.executable, "connect",
            "-r", connection.repository_name,
            "-h", connection.host,
            "-o", str(connection.port),
            "-n", connection.username,
        ]
        if connection.credentials_ref:
            command += ["-X", connection.credentials_ref]
        return command

    def list_command(self, kind: ObjectKind) -> list[str]:
        return [self.executable, "listobjects", "-o", kind.value.lower()]

    # ------------------------------------------------------------------
    # Process execution
    # ------------------------------------------------------------------

    def _run(self, command: list[str]) -> subprocess.CompletedProcess:
        """
        Run one utility command under the adapter timeout.

        Raises:
            RepositoryTimeoutError: If the command exceeds the timeout.
            RepositoryConnectionError: If the executable cannot be started.
        """
        try:
            return subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise RepositoryTimeoutError(
                f"'{command[0]} {command[1]}' timed out after {self.timeout}s"
            ) from exc
        except OSError as exc:
            raise RepositoryConnectionError(f"Could not run '{command[0]}': {exc}") from exc

    def _connect(self, connection: RepositoryConnection) -> None:
        result = self._run(self.connect_command(connection))
        if result.returncode != 0:
            detail = (result.stderr or result.stdout or "").strip().splitlines()
            raise RepositoryConnectionError(
                f"connect to {build_endpoint(connection.host, connection.port)} failed "
                f"(exit {result.returncode}): {detail[-1] if detail else 'no output'}"
            )

    def _list_objects(self, kind: ObjectKind) -> list[dict[str, Any]]:
        """List one object kind; a failed command yields an empty list."""
        try:
            result = self._run(self.list_command(kind))
        except RepositoryConnectionError as exc:
            log.warning("Listing %s failed, continuing without them: %s", kind.plural, exc)
            return []
        if result.returncode != 0:
            log.warning("Listing %s exited with %d", kind.plural, result.returncode)
            return []
        return parse_listing(kind, result.stdout or "")

    # ------------------------------------------------------------------
    # RepositoryAdapter
    # ------------------------------------------------------------------

    def test_connection(self, connection: RepositoryConnection) -> bool:
        try:
            self._connect(connection)
        except RepositoryConnectionError as exc:
            log.warning("CLI connection test failed: %s", exc)
            return False
        return True

    def discover(self, connection: RepositoryConnection) -> RawDiscoveryPayload:
        """
        Connect, then list every object kind sequentially.

        Raises:
            RepositoryConnectionError: If the connect command fails or times out.
        """
        self._connect(connection)
        log.info(
            "Discovering repository '%s' via %s at %s",
            connection.repository_name, self.executable,
            build_endpoint(connection.host, connection.port),
        )
        records = {kind.plural: self._list_objects(kind) for kind in ObjectKind}
        payload = RawDiscoveryPayload(**records)
        log.info("CLI discovery returned %d raw record(s): %s", payload.total, payload.counts())
        return payload
