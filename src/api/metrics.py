from prometheus_client import Counter, Histogram, Gauge, REGISTRY


# we check if they are already registered to avoid errors during hot reloads or test runs
def get_or_create_metric(name, documentation, metric_type, **kwargs):
    try:
        return metric_type(name, documentation, **kwargs)
    except ValueError:
        return REGISTRY._names_to_collectors[name]


REQUESTS_TOTAL = get_or_create_metric(
    "workout_requests_total",
    "Total requests",
    Counter,
    labelnames=["endpoint", "status"],
)

REQUEST_LATENCY_SECONDS = get_or_create_metric(
    "workout_request_latency_seconds",
    "Request latency",
    Histogram,
    labelnames=["endpoint"],
)

FETCHES_TOTAL = get_or_create_metric(
    "workout_fetches_total",
    "Workout spreadsheet loads by outcome",
    Counter,
    labelnames=["outcome"],
)

NOTE_SAVES_TOTAL = get_or_create_metric(
    "workout_note_saves_total",
    "Note saves by outcome",
    Counter,
    labelnames=["outcome"],
)

RECORDS_LOADED = get_or_create_metric(
    "workout_records_loaded", "Workout records currently loaded", Gauge
)
