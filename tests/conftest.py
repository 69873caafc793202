import pytest

from tabletent import db
from tabletent.app import create_app


@pytest.fixture
def store(tmp_path, monkeypatch):
    """An empty code pool in a throwaway database."""
    monkeypatch.delenv("TABLETENT_DB_PATH", raising=False)
    monkeypatch.setattr(db, "DB_PATH", str(tmp_path / "codes.db"))
    db.init_db()
    return db.DB_PATH


@pytest.fixture
def insert_codes(store):
    def _insert(codes, used=()):
        with db.db_cursor() as cur:
            cur.executemany(
                "INSERT INTO unique_codes (code, generated_date) VALUES (?, ?)",
                [
                    (c, "2020-01-01T00:00:00+00:00" if c in used else "")
                    for c in codes
                ],
            )
    return _insert


@pytest.fixture
def app(store):
    app = create_app({"DB_PATH": store, "SECRET_KEY": "test"})
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()
