"""Shared constants for wlpop."""

import signal

__all__ = [
    "CONTAINS_SCORE",
    "CONTROL_TIMEOUT",
    "DAEMON_SIGNALS",
    "DEFAULT_MAX_RESULTS",
    "EXACT_SCORE",
    "PAGE_SIZE",
    "PREFIX_BASE_SCORE",
    "RELAUNCH_POLL_DELAY",
    "RELAUNCH_RETRIES",
    "RELOAD_SIGNAL",
    "SUBPROCESS_TIMEOUT",
    "TASK_TIMEOUT",
    "THEME_OVERRIDE_ENV",
    "TOGGLE_SIGNAL",
    "USAGE_BONUS",
]

# Signals understood by a running daemon
TOGGLE_SIGNAL = signal.SIGUSR1
RELOAD_SIGNAL = signal.SIGUSR2
DAEMON_SIGNALS = (TOGGLE_SIGNAL, RELOAD_SIGNAL)

# Fuzzy ranking
EXACT_SCORE = 1000
PREFIX_BASE_SCORE = 500
CONTAINS_SCORE = 200
USAGE_BONUS = 50

# List navigation
PAGE_SIZE = 10
DEFAULT_MAX_RESULTS = 50

# `--reload` / `--theme`: wait up to 20 x 50ms for the old daemon to exit
RELAUNCH_RETRIES = 20
RELAUNCH_POLL_DELAY = 0.05

THEME_OVERRIDE_ENV = "GUI_THEME_OVERRIDE"

# Seconds
SUBPROCESS_TIMEOUT = 5.0
TASK_TIMEOUT = 15.0
CONTROL_TIMEOUT = 2.0
