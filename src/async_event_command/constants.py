"""
Default configuration values for async-event-command.
"""

# Number of additional attempts allowed after a conflicting first attempt
DEFAULT_EVENT_ALREADY_EXISTS_RETRIES = 2

# Table used by the Cassandra event store
DEFAULT_EVENTS_TABLE = "events"

# Entries kept by the in-memory metrics collector
DEFAULT_MAX_METRICS_ENTRIES = 10000
