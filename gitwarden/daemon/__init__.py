"""Daemon module for gitwarden.

Runs the auto-fetch scheduler as a long-lived service, optionally
forked into the background.
"""

from gitwarden.daemon.pid import PIDFile
from gitwarden.daemon.service import (
    GitwardenDaemon,
    daemonize,
    run_daemon,
)

__all__ = [
    "GitwardenDaemon",
    "PIDFile",
    "daemonize",
    "run_daemon",
]
