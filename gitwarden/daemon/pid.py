"""PID file management for the fetch daemon."""

import os
from pathlib import Path
from typing import Optional


class PIDFile:
    """Track the running daemon through a PID file.

    Example:
        pid_file = PIDFile(config.pid_file)

        if pid_file.is_running():
            print(f"gitwarden already running (PID {pid_file.read()})")
        else:
            pid_file.create()
            try:
                ...
            finally:
                pid_file.remove()
    """

    def __init__(self, path: Path):
        self.path = path

    def create(self) -> None:
        """Write the current process ID, creating the parent directory."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(str(os.getpid()))

    def remove(self) -> None:
        """Remove the PID file if present."""
        self.path.unlink(missing_ok=True)

    def read(self) -> Optional[int]:
        """Read the stored PID.

        Returns:
            The PID, or None if the file is missing or unreadable
        """
        try:
            return int(self.path.read_text().strip())
        except (ValueError, OSError):
            return None

    def is_running(self) -> bool:
        """Check whether the stored PID belongs to a live process."""
        pid = self.read()
        if pid is None:
            return False
        return _process_exists(pid)

    def get_pid(self) -> Optional[int]:
        """Return the daemon's PID if it is running, otherwise None."""
        if self.is_running():
            return self.read()
        return None

    def clear_if_stale(self) -> bool:
        """Remove the PID file if its process is gone.

        Returns:
            True if a stale file was removed
        """
        pid = self.read()
        if pid is None or _process_exists(pid):
            return False
        self.remove()
        return True


def _process_exists(pid: int) -> bool:
    try:
        # Signal 0 only checks that the process exists
        os.kill(pid, 0)
    except PermissionError:
        # Exists, owned by another user
        return True
    except OSError:
        return False
    return True
