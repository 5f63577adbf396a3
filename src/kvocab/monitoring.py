"""Monitoring configuration for the quiz engine."""
from prometheus_client import Counter, Histogram, start_http_server

# Session metrics
sessions_started = Counter(
    "kvocab_sessions_started_total",
    "Total number of quiz sessions started",
)

sessions_completed = Counter(
    "kvocab_sessions_completed_total",
    "Total number of quiz sessions in which every word graduated or was removed",
)

# Learning metrics
guesses = Counter(
    "kvocab_guesses_total",
    "First submissions per presentation, by result",
    ["result"],  # correct, incorrect, peeked
)

words_graduated = Counter(
    "kvocab_words_graduated_total",
    "Total number of words promoted to the graduated tier",
)

# Storage metrics
persistence_errors = Counter(
    "kvocab_persistence_errors_total",
    "Total number of failed outcome writes",
)

words_uploaded = Counter(
    "kvocab_words_uploaded_total",
    "Total number of vocabulary items uploaded",
)

# Audio metrics
pronunciation_requests = Counter(
    "kvocab_pronunciation_requests_total",
    "Pronunciation requests, by source",
    ["source"],  # cache, synthesised, error
)

pronunciation_duration = Histogram(
    "kvocab_pronunciation_duration_seconds",
    "Duration of speech synthesis calls in seconds",
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0],
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)
