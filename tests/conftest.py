import os, sys, pytest
from types import SimpleNamespace
from datetime import datetime

# allow importing the app modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from app import create_app
from models import db


def _build_app(tmp_path, monkeypatch, seed, storage=None):
    # using a temp sqlite db for testing
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("SECRET_KEY", "test")
    return create_app({"TESTING": True, "SEED_ON_STARTUP": seed}, storage=storage)


def _teardown(app):
    # close sessions and dispose engine to silence ResourceWarnings
    with app.app_context():
        db.session.remove()
        db.engine.dispose()


@pytest.fixture()
def app(tmp_path, monkeypatch):
    app = _build_app(tmp_path, monkeypatch, seed=False)
    yield app
    _teardown(app)


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def seeded_app(tmp_path, monkeypatch):
    app = _build_app(tmp_path, monkeypatch, seed=True)
    yield app
    _teardown(app)


@pytest.fixture()
def seeded_client(seeded_app):
    return seeded_app.test_client()


class FakeStorage:
    """In-memory stand-in for MovieStorage; any method can be made to fail."""

    def __init__(self, fail=()):
        self.fail = set(fail)
        self.calls = []
        self.movies = {
            1: SimpleNamespace(id=1, title="The Godfather", year=1972, genre="Crime", created_at=datetime(2024, 1, 1)),
            2: SimpleNamespace(id=2, title="Pulp Fiction", year=1994, genre="Crime", created_at=datetime(2024, 1, 1)),
        }
        self.scores = [4, 5]

    def _record(self, name, *args):
        self.calls.append((name, args))
        if name in self.fail:
            raise RuntimeError("DB error")

    def seed_movies(self):
        self._record("seed_movies")
        return False

    def get_all_movies(self):
        self._record("get_all_movies")
        return [SimpleNamespace(movie=m, avg_rating=4.5, total_ratings=2) for m in self.movies.values()]

    def get_movie_by_id(self, movie_id):
        self._record("get_movie_by_id", movie_id)
        return self.movies.get(movie_id)

    def get_ratings_for_movie(self, movie_id):
        self._record("get_ratings_for_movie", movie_id)
        return list(self.scores)

    def add_movie(self, data):
        self._record("add_movie", data)
        return SimpleNamespace(id=99, created_at=datetime(2024, 1, 1), **data)

    def add_rating(self, movie_id, score):
        self._record("add_rating", movie_id, score)
        return SimpleNamespace(avg_rating=4.3, total_ratings=3)

    def called(self, name):
        return [args for n, args in self.calls if n == name]


@pytest.fixture()
def make_fake_client(tmp_path, monkeypatch):
    apps = []

    def _make(fail=()):
        storage = FakeStorage(fail=fail)
        app = _build_app(tmp_path, monkeypatch, seed=True, storage=storage)
        apps.append(app)
        return storage, app.test_client()

    yield _make
    for a in apps:
        _teardown(a)
