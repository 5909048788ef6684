"""Watch daemon: runs the session's timers in the foreground until signalled.

Usage:
    python -m peerclient watch 42          # follow order 42
    python -m peerclient watch             # follow the robot's current order
    python -m peerclient daemon --stop
    python -m peerclient daemon --status
"""

import json
import logging
import os
import signal
import sys
import time
from pathlib import Path

from peerclient.models.common import utc_now, utc_now_iso
from peerclient.session import ClientSession

logger = logging.getLogger(__name__)

PID_DIR = Path("data")
PID_FILE = PID_DIR / "daemon.pid"
STATE_FILE = PID_DIR / "daemon_state.json"
LOG_DIR = Path("logs")
MAX_LOG_FILES = 20
STOP_TIMEOUT_S = 30


def _read_pid() -> int | None:
    """PID recorded in PID_FILE, or None when absent or unreadable."""
    try:
        return int(PID_FILE.read_text().strip())
    except (FileNotFoundError, ValueError):
        return None


def _alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    return True


class SyncDaemon:
    """Drives one ClientSession: due timers, state snapshots, clean shutdown."""

    def __init__(self, session: ClientSession, tick_seconds: float | None = None):
        self.session = session
        self.tick_seconds = tick_seconds or session.config.polling.tick_seconds
        self._running = False
        self._timers_run = 0
        self._started_at: str | None = None
        self._log_handler: logging.Handler | None = None

    def start(self, order_id: int | None = None) -> None:
        self._claim_pid_file()
        self._setup_signals()
        self._attach_log_file()
        self._running = True
        self._started_at = utc_now_iso()

        try:
            self.session.start(order_id=order_id)
            logger.info(
                "Watching %s on %s (pid %d)",
                self.session.base_url, self.session.network.value, os.getpid(),
            )
            print(f"🔄 Watching {self.session.base_url} (pid {os.getpid()})")
            print("   Stop with: python -m peerclient daemon --stop")
            self._loop()
        except KeyboardInterrupt:
            logger.info("Interrupted from the keyboard")
        finally:
            self._shutdown()

    def _loop(self) -> None:
        scheduler = self.session.scheduler
        while self._running:
            self._timers_run += scheduler.run_due()
            self._save_state()

            deadline = scheduler.next_deadline()
            remaining = self.tick_seconds if deadline is None else deadline - scheduler.clock()
            # Never sleep longer than one tick so signals are noticed
            time.sleep(max(0.0, min(remaining, self.tick_seconds)))

    def _setup_signals(self) -> None:
        def _request_stop(signum: int, frame: object) -> None:
            name = signal.Signals(signum).name
            logger.info("Got %s, stopping after the current timer", name)
            print(f"\n⏹️  {name} received, stopping...")
            self._running = False

        for sig in (signal.SIGTERM, signal.SIGINT):
            signal.signal(sig, _request_stop)

    def _attach_log_file(self) -> None:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        path = LOG_DIR / f"session_{utc_now().strftime('%Y%m%dT%H%M%SZ')}.log"
        handler = logging.FileHandler(path)
        handler.setLevel(logging.INFO)
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logging.getLogger().addHandler(handler)
        self._log_handler = handler
        self._rotate_logs()

    def _rotate_logs(self) -> None:
        """Delete all but the newest MAX_LOG_FILES session logs."""
        if not LOG_DIR.exists():
            return
        logs = sorted(LOG_DIR.glob("session_*.log"))
        for stale in logs[:-MAX_LOG_FILES]:
            stale.unlink(missing_ok=True)

    def _claim_pid_file(self) -> None:
        """Record our PID, refusing to start next to a live daemon."""
        pid = _read_pid()
        if pid is not None:
            try:
                running = _alive(pid)
            except PermissionError:
                print(f"❌ Cannot verify pid {pid}; a daemon may already be running.")
                sys.exit(1)
            if running:
                print(f"❌ A daemon is already running (pid {pid}).")
                print("   Stop it with: python -m peerclient daemon --stop")
                sys.exit(1)
            logger.info("Removing stale pid file for %d", pid)
        PID_DIR.mkdir(parents=True, exist_ok=True)
        PID_FILE.write_text(str(os.getpid()))

    def _save_state(self) -> None:
        """Write the session snapshot for `daemon --status`."""
        state = {
            "pid": os.getpid(),
            "started_at": self._started_at,
            "timers_run": self._timers_run,
            "last_update": utc_now_iso(),
            **self.session.snapshot(),
        }
        STATE_FILE.write_text(json.dumps(state, indent=2, default=str))

    def _shutdown(self) -> None:
        self.session.close()
        PID_FILE.unlink(missing_ok=True)
        self._save_state()
        logger.info("Stopped after %d timers", self._timers_run)
        if self._log_handler is not None:
            logging.getLogger().removeHandler(self._log_handler)
            self._log_handler.close()
            self._log_handler = None
        print(f"⏹️  Stopped after {self._timers_run} polls")


def stop_daemon() -> int:
    """Ask the running daemon to stop (SIGTERM), escalating to SIGKILL."""
    if not PID_FILE.exists():
        print("No daemon running (no pid file)")
        return 1

    pid = _read_pid()
    if pid is None:
        print("Unreadable pid file, removing it")
        PID_FILE.unlink(missing_ok=True)
        return 1

    if not _alive(pid):
        print(f"No process with pid {pid}, removing leftover files")
        PID_FILE.unlink(missing_ok=True)
        STATE_FILE.unlink(missing_ok=True)
        return 0

    print(f"Sending SIGTERM to {pid}...")
    os.kill(pid, signal.SIGTERM)
    deadline = time.monotonic() + STOP_TIMEOUT_S
    while time.monotonic() < deadline:
        time.sleep(1)
        if not _alive(pid):
            print("✅ Stopped")
            PID_FILE.unlink(missing_ok=True)
            return 0

    print(f"⚠️  Still running after {STOP_TIMEOUT_S}s, sending SIGKILL")
    os.kill(pid, signal.SIGKILL)
    PID_FILE.unlink(missing_ok=True)
    return 0


def daemon_status() -> int:
    """Print the last state the daemon wrote."""
    if not STATE_FILE.exists():
        print("No daemon state found")
        return 1

    state = json.loads(STATE_FILE.read_text())
    pid = state.get("pid")
    try:
        running = _alive(int(pid))
    except (TypeError, ValueError):
        running = False

    order = state.get("order") or {}
    robot = state.get("robot") or {}
    print(f"{'🟢 running' if running else '🔴 stopped'} (pid {pid or '?'})")
    print(f"  Network: {state.get('network', '?')}")
    print(f"  Coordinator: {state.get('coordinator', '?')} ({state.get('base_url', '?')})")
    print(f"  Robot: {robot.get('nickname') or '-'}")
    print(f"  Order: {order.get('order_id') or '-'} status={order.get('status_name') or '-'}")
    if order.get("message"):
        print(f"  Message: {order['message']}")
    print(f"  Next poll: {order.get('next_delay_ms') or '-'} ms")
    print(f"  Updated: {state.get('last_update', '?')}")
    return 0
