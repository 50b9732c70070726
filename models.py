import sqlite3
from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event
from sqlalchemy.engine import Engine

db = SQLAlchemy(session_options={"expire_on_commit": False})


def _utcnow():
    # stored naive, always UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


@event.listens_for(Engine, "connect")
def _sqlite_foreign_keys(dbapi_conn, connection_record):
    # SQLite ships with foreign keys off
    if isinstance(dbapi_conn, sqlite3.Connection):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


class Movie(db.Model): #movie model
    __tablename__ = "movies"
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.Text, nullable=False, index=True)
    year = db.Column(db.Integer, nullable=False)
    genre = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=_utcnow, nullable=False)

    ratings = db.relationship("Rating", back_populates="movie", lazy="select") #one movie, many ratings

    def __repr__(self):
        return f"<Movie {self.id} {self.title!r}>"

class Rating(db.Model):
    __tablename__ = "ratings"
    id = db.Column(db.Integer, primary_key=True)
    movie_id = db.Column(db.Integer, db.ForeignKey("movies.id"), nullable=False, index=True)
    score = db.Column(db.Integer, nullable=False)     # 1–5 stars
    created_at = db.Column(db.DateTime, default=_utcnow, nullable=False)

    movie = db.relationship("Movie", back_populates="ratings")

    def __repr__(self):
        return f"<Rating {self.id} movie={self.movie_id} score={self.score}>"
