"""Start the Task Management API under uvicorn.

Before launching, the configured database is checked and its tables are
created if needed, so a bad ``database.url`` fails here with one log line
instead of inside every request. A server that keeps crashing is restarted
until it crashes too often within a time window.

    python scripts/run_backend.py [--check] [--max-restarts N] [--window-seconds S]
"""

from __future__ import annotations

import argparse
from collections import deque
import logging
import signal
import subprocess
import sys
import time

from taskapi.config import Settings, SettingsError, get_settings
from taskapi.database import check_connection, ensure_schema
from taskapi.errors import StorageError
from taskapi.logging_config import setup_logging

logger = logging.getLogger("taskapi.system")

APP_PATH = "taskapi.main:app"


class RestartGuard:
    """Counts crashes inside a sliding window and says when to give up."""

    def __init__(self, max_restarts: int, window_seconds: float) -> None:
        self.max_restarts = max_restarts
        self.window_seconds = window_seconds
        self._crashes: deque[float] = deque()

    @property
    def crash_count(self) -> int:
        return len(self._crashes)

    def record_crash(self, now: float) -> bool:
        """Record a crash at ``now``; return True if another restart is allowed."""
        self._crashes.append(now)
        while self._crashes and now - self._crashes[0] > self.window_seconds:
            self._crashes.popleft()
        return len(self._crashes) < self.max_restarts


def preflight(settings: Settings) -> bool:
    """Verify the database is reachable and its schema exists."""
    try:
        check_connection()
        ensure_schema()
    except StorageError as exc:
        logger.error("%s: %s (database.url = %s)", exc.message, exc.details.get("error"), settings.database_url)
        return False
    if not settings.github_client_id or not settings.github_client_secret:
        logger.warning("GitHub OAuth credentials are not configured; /login will not work")
    logger.info("Database ready at %s", settings.database_url)
    return True


def build_command(settings: Settings) -> list[str]:
    command = [sys.executable, "-m", "uvicorn", APP_PATH, "--host", settings.host, "--port", str(settings.port)]
    if settings.debug:
        command.append("--reload")
    return command


def serve(command: list[str], guard: RestartGuard) -> int:
    """Run the server process until it exits cleanly or the guard gives up."""
    process: subprocess.Popen[bytes] | None = None

    def stop(signum: int, frame: object) -> None:
        if process is not None and process.poll() is None:
            process.terminate()
        sys.exit(0)

    signal.signal(signal.SIGINT, stop)
    signal.signal(signal.SIGTERM, stop)

    while True:
        process = subprocess.Popen(command)
        return_code = process.wait()
        if return_code == 0:
            return 0
        if not guard.record_crash(time.monotonic()):
            logger.error(
                "Server crashed %s times within %s seconds, not restarting",
                guard.crash_count,
                guard.window_seconds,
            )
            return return_code
        logger.warning(
            "Server exited with code %s, restarting (%s/%s)", return_code, guard.crash_count, guard.max_restarts
        )
        time.sleep(1.0)


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--check", action="store_true", help="run the database preflight and exit")
    parser.add_argument("--max-restarts", type=int, default=3, help="crashes allowed within the window (default: 3)")
    parser.add_argument("--window-seconds", type=float, default=60, help="crash counting window (default: 60)")
    args = parser.parse_args()

    try:
        settings = get_settings()
    except SettingsError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2
    setup_logging(log_dir=settings.log_path, debug=settings.debug)

    if not preflight(settings):
        return 1
    if args.check:
        return 0
    return serve(build_command(settings), RestartGuard(args.max_restarts, args.window_seconds))


if __name__ == "__main__":
    sys.exit(main())
