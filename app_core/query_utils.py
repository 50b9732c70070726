from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from sqlalchemy import func

from models import db, Movie, Rating

ONE_DECIMAL = Decimal("0.1")


def round_average(total: int, count: int) -> float:
    """Mean of ``count`` scores summing to ``total``, half-up to one decimal; 0 when empty."""
    if not count:
        return 0
    avg = (Decimal(int(total)) / Decimal(int(count))).quantize(ONE_DECIMAL, rounding=ROUND_HALF_UP)
    # whole numbers come back as ints so 3.0 serializes as 3
    return int(avg) if avg == avg.to_integral_value() else float(avg)


def average_rating(scores: Optional[Iterable[int]]) -> float:
    scores = list(scores or [])
    return round_average(sum(scores), len(scores))


def build_movie_stats_query():
    """Every movie with its rating sum and count; outer join keeps unrated movies."""
    score_sum = func.coalesce(func.sum(Rating.score), 0).label("score_sum")
    rating_count = func.count(Rating.id).label("rating_count")
    return (
        db.session.query(Movie, score_sum, rating_count)
        .outerjoin(Rating, Rating.movie_id == Movie.id)
        .group_by(Movie.id)
        .order_by(Movie.title.asc())
    )


def build_rating_summary_query(movie_id: int):
    return db.session.query(
        func.coalesce(func.sum(Rating.score), 0),
        func.count(Rating.id),
    ).filter(Rating.movie_id == movie_id)
