#loads the starter catalogue into the db; pass --reset to wipe it first
import sys

from app import create_app
from app_core.api import get_storage
from models import db, Movie, Rating

app = create_app({"SEED_ON_STARTUP": False})

with app.app_context():
    if "--reset" in sys.argv[1:]:
        db.drop_all(); db.create_all()
    seeded = get_storage().seed_movies()
    print("Seeded:" if seeded else "Already seeded:", db.session.query(Movie).count(), "movies,",
          db.session.query(Rating).count(), "ratings")
