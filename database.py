# database.py
# Holds the database instance to avoid circular imports

from contextlib import contextmanager

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def init_db(app):
    """Initialize the database with the Flask app"""
    db.init_app(app)
    return db


@contextmanager
def transaction(session):
    """Run a unit of work: commit on success, roll everything back on failure"""
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
