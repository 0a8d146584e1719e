"""Constants for egad-sync."""

# Application identity (used for platformdirs lookups)
APP_NAME = "egad-sync"
APP_AUTHOR = "egad"

# Files
STATE_FILE = "state.json"
CONFIG_FILE = "config.yaml"
LOCK_SUFFIX = ".lock"

# Sync loop
DEFAULT_SYNC_INTERVAL_SECS = 60
STATE_LOCK_TIMEOUT_SECS = 30

# Environment overrides
ENV_SYNC_INTERVAL = "EGAD_SYNC_INTERVAL"
ENV_STATE_FILE = "EGAD_SYNC_STATE_FILE"
ENV_INCLUDE_DIRS = "EGAD_SYNC_INCLUDE_DIRS"

# Version
EGAD_SYNC_VERSION = "0.1.0"
