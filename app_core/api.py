import logging
from datetime import timezone

from flask import Blueprint, current_app, jsonify

from models import Movie
from .errors import (
    ApiError, failure_message, read_json, parse_id, to_int,
    validate_movie_payload, is_valid_year, is_valid_rating,
)
from .metrics import record_movie_created, record_rating_submitted
from .query_utils import average_rating

logger = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__, url_prefix="/api")  # blueprint for API routes

STORAGE_KEY = "movie_storage"


def get_storage():
    return current_app.extensions[STORAGE_KEY]


def movie_to_dict(m: Movie):
    return {
        "id": m.id,
        "title": m.title,
        "year": m.year,
        "genre": m.genre,
        "createdAt": iso_utc(m.created_at),
    }


def iso_utc(ts):
    # timestamps are stored naive in UTC
    if ts is None:
        return None
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc).replace(tzinfo=None)
    return ts.isoformat() + "Z"


@api_bp.get("/movies")
@failure_message("Failed to fetch movies")
def list_movies():
    rows = get_storage().get_all_movies()
    return jsonify([
        movie_to_dict(r.movie) | {"avgRating": r.avg_rating, "totalRatings": r.total_ratings}
        for r in rows
    ])


@api_bp.post("/movies")
@failure_message("Failed to add movie")
def create_movie():
    checked = validate_movie_payload(read_json())
    if not checked.ok:
        logger.info("Rejected movie: %s", checked.reason)
        raise ApiError(400, "Invalid fields")

    # schema first, then the year range
    data = checked.value
    if not is_valid_year(data["year"]):
        raise ApiError(400, "Invalid year")

    m = get_storage().add_movie(data | {"year": to_int(data["year"])})
    record_movie_created()
    return movie_to_dict(m), 201


@api_bp.get("/movies/<movie_id>")
@failure_message("Failed to fetch movie")
def get_movie(movie_id):
    movie_id = parse_id(movie_id)

    storage = get_storage()
    m = storage.get_movie_by_id(movie_id)
    if m is None:
        raise ApiError(404, "Not found")

    scores = storage.get_ratings_for_movie(movie_id)
    return movie_to_dict(m) | {
        "avgRating": average_rating(scores),
        "totalRatings": len(scores),
        "ratings": scores,
    }


@api_bp.post("/movies/<movie_id>/rate")
@failure_message("Failed to add rating")
def rate_movie(movie_id):
    data = read_json()
    raw_score = data.get("score") if isinstance(data, dict) else None

    # id before score, score before existence
    movie_id = parse_id(movie_id)
    if not is_valid_rating(raw_score):
        raise ApiError(400, "Invalid rating")

    storage = get_storage()
    if storage.get_movie_by_id(movie_id) is None:
        raise ApiError(404, "Not found")

    score = to_int(raw_score)
    summary = storage.add_rating(movie_id, score)
    record_rating_submitted(score, summary.avg_rating)
    return {"avgRating": summary.avg_rating, "totalRatings": summary.total_ratings}
