"""
Persistence layer for movies and ratings.

``MovieStorage`` is the only code that talks to the database. The app
factory creates one and hands it to the API blueprint through
``app.extensions``; every operation runs in its own session scope.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, List, NamedTuple, Optional

from models import Movie, Rating
from .errors import validate_rating_payload
from .query_utils import build_movie_stats_query, build_rating_summary_query, round_average

logger = logging.getLogger(__name__)


SEED_MOVIES = [
    {"title": "The Godfather", "year": 1972, "genre": "Crime"},
    {"title": "Pulp Fiction", "year": 1994, "genre": "Crime"},
    {"title": "The Shawshank Redemption", "year": 1994, "genre": "Drama"},
    {"title": "Schindler's List", "year": 1993, "genre": "Drama"},
    {"title": "2001: A Space Odyssey", "year": 1968, "genre": "Sci-Fi"},
    {"title": "Blade Runner", "year": 1982, "genre": "Sci-Fi"},
    {"title": "Chinatown", "year": 1974, "genre": "Thriller"},
    {"title": "Mulholland Drive", "year": 2001, "genre": "Thriller"},
    {"title": "Singin' in the Rain", "year": 1952, "genre": "Musical"},
    {"title": "Sunset Boulevard", "year": 1950, "genre": "Drama"},
]

# (index into SEED_MOVIES, score)
SEED_RATINGS = [
    (0, 5), (0, 5), (0, 4),
    (1, 4), (1, 5),
    (2, 5), (2, 5), (2, 5),
    (3, 5), (3, 4),
    (4, 4), (4, 3),
    (5, 4), (5, 4), (5, 5),
    (6, 3),
    (7, 4), (7, 3),
    (8, 5), (8, 4), (8, 5),
    (9, 4), (9, 3),
]


class MovieWithStats(NamedTuple):
    movie: Movie
    avg_rating: float
    total_ratings: int


class RatingSummary(NamedTuple):
    avg_rating: float
    total_ratings: int


class MovieStorage:
    def __init__(self, db):
        self.db = db

    @contextmanager
    def session_scope(self):
        """Commit on success, roll back and re-raise on failure."""
        session = self.db.session
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise

    def get_all_movies(self) -> List[MovieWithStats]:
        with self.session_scope():
            rows = build_movie_stats_query().all()
            return [
                MovieWithStats(movie, round_average(score_sum, count), int(count))
                for movie, score_sum, count in rows
            ]

    def get_movie_by_id(self, movie_id: int) -> Optional[Movie]:
        with self.session_scope() as session:
            return session.get(Movie, movie_id)

    def get_ratings_for_movie(self, movie_id: int) -> List[int]:
        with self.session_scope() as session:
            rows = (
                session.query(Rating.score)
                .filter(Rating.movie_id == movie_id)
                .order_by(Rating.created_at.desc(), Rating.id.desc())
                .all()
            )
            return [score for (score,) in rows]

    def add_movie(self, data: Dict[str, Any]) -> Movie:
        with self.session_scope() as session:
            m = Movie(title=data["title"], year=int(data["year"]), genre=data["genre"])
            session.add(m)
        logger.info("Added movie %s %r (%s)", m.id, m.title, m.year)
        return m

    def add_rating(self, movie_id: int, score: int) -> RatingSummary:
        """
        Insert a rating and return the movie's updated average and count.

        The insert and the aggregate read share one transaction, so the
        summary always includes the rating just written.
        """
        checked = validate_rating_payload({"movieId": movie_id, "score": score})
        if not checked.ok:
            raise ValueError(checked.reason)

        with self.session_scope() as session:
            session.add(Rating(movie_id=movie_id, score=int(score)))
            session.flush()
            total, count = build_rating_summary_query(movie_id).one()
        return RatingSummary(round_average(total, count), int(count))

    def seed_movies(self) -> bool:
        """
        Insert the starter catalogue and sample ratings unless any movie
        already exists. Returns True when rows were inserted.
        """
        with self.session_scope() as session:
            if session.query(Movie.id).limit(1).first() is not None:
                return False

            movies = [Movie(**row) for row in SEED_MOVIES]
            session.add_all(movies)
            session.flush()
            session.add_all(
                Rating(movie_id=movies[idx].id, score=score)
                for idx, score in SEED_RATINGS
            )
        logger.info("Seeded %d movies and %d ratings", len(SEED_MOVIES), len(SEED_RATINGS))
        return True
