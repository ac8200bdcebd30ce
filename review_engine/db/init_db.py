# review_engine/db/init_db.py
from review_engine.db.base import Base
from review_engine.db.session import engine
from review_engine import models  # noqa: F401


def init_db() -> None:
    Base.metadata.create_all(bind=engine)
