import logging
import math
from datetime import datetime
from functools import wraps
from typing import Any, Dict, NamedTuple, Optional

from flask import request
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)

# Roundhay Garden Scene, the oldest surviving film
FIRST_FILM_YEAR = 1888
MIN_SCORE, MAX_SCORE = 1, 5
MAX_ID = 2**63 - 1

# -----------------------------
# JSON error handlers
# -----------------------------

class ApiError(Exception):
    """An error surfaced to the client as ``{"error": message}``."""

    def __init__(self, status: int, message: str):
        super().__init__(message)
        self.status = status
        self.message = message


def install_json_error_handlers(app):
    @app.errorhandler(ApiError)
    def handle_api(e: ApiError):
        return {"error": e.message}, e.status

    @app.errorhandler(HTTPException)
    def handle_http(e: HTTPException):
        return {"error": e.description}, e.code

    @app.errorhandler(Exception)
    def handle_generic(e: Exception):
        # Avoid leaking details in production responses
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return {"error": "Internal Server Error"}, 500


def failure_message(message: str):
    """
    Turn any unexpected exception raised by the wrapped view into a 500
    carrying an operation-specific message. Client errors pass through.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            try:
                return fn(*args, **kwargs)
            except (ApiError, HTTPException):
                raise
            except Exception as e:
                logger.exception("%s (%s %s)", message, request.method, request.path)
                raise ApiError(500, message) from e
        return wrapper
    return decorator


# -----------------------------
# Validators & helpers
# -----------------------------

class ValidationResult(NamedTuple):
    ok: bool
    value: Optional[Dict[str, Any]] = None
    reason: Optional[str] = None


def current_year() -> int:
    return datetime.now().year


def coerce_number(v: Any) -> Optional[float]:
    """
    Loose numeric coercion for JSON input: numbers pass, booleans become
    0/1, numeric strings are parsed. Anything else (None, "", NaN, lists)
    gives None.
    """
    if isinstance(v, bool):
        return int(v)
    if isinstance(v, int):
        return v
    if isinstance(v, float):
        return None if math.isnan(v) else v
    if isinstance(v, str):
        s = v.strip()
        if not s:
            return None
        try:
            n = float(s)
        except ValueError:
            return None
        return None if math.isnan(n) else n
    return None


def to_int(v: Any) -> Optional[int]:
    n = coerce_number(v)
    if n is None:
        return None
    if isinstance(n, float):
        # ints may exceed float range, so only floats are checked for inf
        if math.isinf(n) or not n.is_integer():
            return None
        return int(n)
    return n


def is_valid_year(v: Any) -> bool:
    year = to_int(v)
    return year is not None and FIRST_FILM_YEAR <= year <= current_year()


def is_valid_rating(v: Any) -> bool:
    score = to_int(v)
    return score is not None and MIN_SCORE <= score <= MAX_SCORE


def parse_id(raw: Any) -> int:
    movie_id = to_int(raw)
    # ids are 64-bit integer keys in the store
    if movie_id is None or not -MAX_ID <= movie_id <= MAX_ID:
        raise ApiError(400, "Invalid ID")
    return movie_id


def _non_empty_str(v: Any) -> bool:
    return isinstance(v, str) and v != ""


def _numeric(v: Any) -> bool:
    # booleans are not accepted as numbers at the schema level
    return not isinstance(v, bool) and coerce_number(v) is not None


def validate_movie_payload(data: Any) -> ValidationResult:
    if not isinstance(data, dict):
        return ValidationResult(False, reason="body must be a JSON object")
    if not _non_empty_str(data.get("title")):
        return ValidationResult(False, reason="title must be a non-empty string")
    if not _numeric(data.get("year")):
        return ValidationResult(False, reason="year must be a number")
    if not _non_empty_str(data.get("genre")):
        return ValidationResult(False, reason="genre must be a non-empty string")
    return ValidationResult(True, {
        "title": data["title"],
        "year": data["year"],
        "genre": data["genre"],
    })


def validate_rating_payload(data: Any) -> ValidationResult:
    if not isinstance(data, dict):
        return ValidationResult(False, reason="body must be a JSON object")
    if not _numeric(data.get("movieId")):
        return ValidationResult(False, reason="movieId must be a number")
    if not _numeric(data.get("score")):
        return ValidationResult(False, reason="score must be a number")
    return ValidationResult(True, {"movieId": data["movieId"], "score": data["score"]})


def read_json() -> Any:
    # a missing or malformed body behaves like an empty object
    data = request.get_json(silent=True, force=True)
    return {} if data is None else data
