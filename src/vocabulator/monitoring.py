"""Monitoring configuration for the application."""
from prometheus_client import Counter, Histogram, start_http_server

# Learning metrics
grades_recorded = Counter(
    "vocabulator_grades_total",
    "Total number of grading events recorded",
    ["result"],
)

bookmark_toggles = Counter(
    "vocabulator_bookmark_toggles_total",
    "Total number of bookmark toggles",
)

sessions_started = Counter(
    "vocabulator_sessions_started_total",
    "Total number of learning sessions started",
    ["kind", "mode"],
)

sessions_completed = Counter(
    "vocabulator_sessions_completed_total",
    "Total number of learning sessions that ran out of words",
    ["kind", "mode"],
)

# Word management metrics
words_seeded = Counter(
    "vocabulator_words_seeded_total",
    "Total number of words added by seeding",
)

seed_lines_skipped = Counter(
    "vocabulator_seed_lines_skipped_total",
    "Total number of malformed seed lines skipped",
)

# Persistence metrics
write_failures = Counter(
    "vocabulator_write_failures_total",
    "Total number of failed progress writes",
)

write_duration = Histogram(
    "vocabulator_write_duration_seconds",
    "Duration of single progress writes in seconds",
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0],
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)
