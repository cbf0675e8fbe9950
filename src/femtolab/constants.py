"""Shared runtime constants for the femtolab instrument drivers.

This is the canonical source of truth for protocol limits and controller
defaults.  Other modules should import from here rather than defining
their own copies.
"""

# ---------------------------------------------------------------------------
# Laser shooter limits
# ---------------------------------------------------------------------------

MIN_PERIOD_US = 1
MAX_PERIOD_US = 1_000_000
DEFAULT_PERIOD_US = 1000
DEFAULT_BATCH_COUNT = 1

# ---------------------------------------------------------------------------
# Laser shooter runtime
# ---------------------------------------------------------------------------

READY_ATTEMPTS = 10
READY_RETRY_INTERVAL = 1.0  # seconds between handshake attempts
READY_LINE = "0\r"  # what a freshly reset counter looks like on the wire
POLL_INTERVAL = 0.2  # seconds between background shot-count refreshes

# ---------------------------------------------------------------------------
# Serial defaults
# ---------------------------------------------------------------------------

DEFAULT_BAUD = 115200
DEFAULT_TIMEOUT = 0.5
DRAIN_TIMEOUT = 0.01  # per-read timeout while discarding stale input

OSCILLOSCOPE_TIMEOUT = 1.0
OSCILLOSCOPE_SETTLE = 0.3  # seconds between writing a SCPI command and reading
MIN_SCOPE_CHANNEL = 1
MAX_SCOPE_CHANNEL = 4

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

DEFAULT_LOG_DIR = "logs"
