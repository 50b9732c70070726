import logging
from time import perf_counter

from flask import Blueprint, g, request, Response
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

logger = logging.getLogger(__name__)

metrics_bp = Blueprint("metrics", __name__)

# Catalogue activity
MOVIES_CREATED = Counter(
    "movieratings_movies_created_total",
    "Movies added through the API",
)
RATINGS_SUBMITTED = Counter(
    "movieratings_ratings_submitted_total",
    "Ratings accepted, by star score",
    ["score"],
)
AVERAGE_AFTER_RATING = Histogram(
    "movieratings_average_after_rating",
    "A movie's average rating right after a new rating is stored",
    buckets=(1, 1.5, 2, 2.5, 3, 3.5, 4, 4.5, 5),
)

# HTTP traffic, labelled by URL rule to keep cardinality bounded
REQUEST_LATENCY = Histogram(
    "movieratings_http_request_latency_seconds",
    "Latency of HTTP requests",
    ["method", "path", "status"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2, 5),
)
REQUEST_COUNT = Counter(
    "movieratings_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)
ERROR_COUNT = Counter(
    "movieratings_http_errors_total",
    "Total HTTP 5xx responses",
    ["method", "path", "status"],
)


def record_movie_created():
    MOVIES_CREATED.inc()


def record_rating_submitted(score: int, avg_rating: float):
    RATINGS_SUBMITTED.labels(str(score)).inc()
    AVERAGE_AFTER_RATING.observe(avg_rating)


@metrics_bp.before_app_request
def _metrics_before():
    g._t_start = perf_counter()

@metrics_bp.after_app_request
def _metrics_after(resp):
    try:
        start = getattr(g, "_t_start", None)
        if start is None:
            return resp
        path = request.url_rule.rule if request.url_rule else "<unmatched>"
        labels = (request.method, path, str(resp.status_code))

        REQUEST_LATENCY.labels(*labels).observe(perf_counter() - start)
        REQUEST_COUNT.labels(*labels).inc()
        if resp.status_code >= 500:
            ERROR_COUNT.labels(*labels).inc()
    except Exception:
        # metrics must never break the app
        logger.warning("Failed to record metrics", exc_info=True)
    return resp

@metrics_bp.get("/metrics")
def metrics():
    return Response(generate_latest(), content_type=CONTENT_TYPE_LATEST)
