import pytest

from tabletent import db, models
from tabletent.errors import StoreUnavailable

ERROR = "`count` query param must be an integer between 0-1000"


@pytest.mark.parametrize(
    "query", ["", "?count=abc", "?count=-100", "?count=2000", "?count="]
)
def test_unique_codes_rejects_bad_count(client, query):
    resp = client.get(f"/api/unique-codes{query}")
    assert resp.status_code == 400
    assert resp.get_json() == {"error": ERROR}


def test_unique_codes_dummy(client):
    resp = client.get("/api/unique-codes?count=10&dummy=true")
    assert resp.status_code == 200
    codes = resp.get_json()
    assert isinstance(codes, list)
    assert len(set(codes)) == 10
    assert models.count_codes() == 0


def test_unique_codes_allocates_from_pool(client, insert_codes):
    insert_codes(["111111", "222222", "333333"])

    resp = client.get("/api/unique-codes?count=2")

    assert resp.status_code == 200
    assert len(resp.get_json()) == 2
    assert resp.headers["X-Codes-Requested"] == "2"
    assert resp.headers["X-Codes-Returned"] == "2"
    assert models.count_available() == 1


def test_unique_codes_reports_short_pool(client, insert_codes):
    insert_codes(["111111"])

    resp = client.get("/api/unique-codes?count=5")

    assert resp.status_code == 200
    assert resp.get_json() == ["111111"]
    assert resp.headers["X-Codes-Requested"] == "5"
    assert resp.headers["X-Codes-Returned"] == "1"


def test_unique_codes_zero(client):
    resp = client.get("/api/unique-codes?count=0")
    assert resp.status_code == 200
    assert resp.get_json() == []


def test_store_failure_is_server_error(client, monkeypatch):
    def broken(count):
        raise StoreUnavailable("disk I/O error")

    monkeypatch.setattr(models, "allocate_codes", broken)

    resp = client.get("/api/unique-codes?count=3")

    assert resp.status_code == 500
    assert resp.get_json() == {"error": "Internal server error"}


def test_front_pdf_uses_dummy_codes_by_default(client, insert_codes):
    insert_codes(["111111", "222222"])

    resp = client.get("/cards/front.pdf?num_pages=1")

    assert resp.status_code == 200
    assert resp.mimetype == "application/pdf"
    assert resp.data.startswith(b"%PDF")
    assert models.count_available() == 2


def test_front_pdf_can_allocate_real_codes(client, insert_codes):
    insert_codes(["111111", "222222", "333333"])

    resp = client.post(
        "/cards/front.pdf",
        data={"dummy": "false", "num_pages": "1", "num_boxes_per_page": "2"},
    )

    assert resp.status_code == 200
    assert models.count_available() == 1


def test_back_pdf(client):
    resp = client.get("/cards/back.pdf")
    assert resp.status_code == 200
    assert resp.mimetype == "application/pdf"


def test_bad_layout_option_is_client_error(client):
    resp = client.get("/cards/back.pdf?num_boxes_per_page=abc")
    assert resp.status_code == 400
    assert "num_boxes_per_page" in resp.get_json()["error"]


def test_index_page_embeds_documents(client):
    resp = client.get("/?num_pages=1")
    assert resp.status_code == 200
    body = resp.get_data(as_text=True)
    assert 'id="frontPdf"' in body
    assert "data:application/pdf;base64," in body


def test_health(client):
    resp = client.get("/health")
    assert resp.get_json() == {"ok": True, "db_initialized": False}


def test_create_app_uses_configured_db(app, store):
    assert app.config["DB_PATH"] == store
    assert db.DB_PATH == store


def test_front_pdf_get_never_claims_real_codes(client, insert_codes):
    """Real codes need a POST; a plain link cannot use up the pool."""
    insert_codes(["111111", "222222"])

    resp = client.get("/cards/front.pdf?dummy=false&num_pages=1")

    assert resp.status_code == 405
    assert models.count_available() == 2


@pytest.mark.parametrize("method", ["get", "post"])
def test_front_pdf_caps_codes_per_request(client, insert_codes, method):
    """A layout needing more than 1000 codes is refused before claiming any."""
    insert_codes([f"{n:06d}" for n in range(1500)])

    resp = getattr(client, method)(
        "/cards/front.pdf?dummy=false&num_pages=600&num_boxes_per_page=2"
    )

    assert resp.status_code == 400
    assert "1000" in resp.get_json()["error"]
    assert models.count_available() == 1500


def test_index_page_caps_page_count(client):
    resp = client.get("/?num_pages=501")
    assert resp.status_code == 400


def test_brand_logos_cannot_be_set_from_request(client, tmp_path):
    path = tmp_path / "notimage.txt"
    path.write_text("hello")

    resp = client.get(f"/cards/front.pdf?num_pages=1&brand_logos={path}")

    assert resp.status_code == 400
    assert "brand_logos" in resp.get_json()["error"]


def test_internal_value_error_is_not_a_client_error(client, monkeypatch):
    """Only layout problems become 400s; other ValueErrors stay server errors."""
    from tabletent import app as app_module

    def broken(count):
        raise ValueError("internal bug")

    monkeypatch.setattr(app_module, "generate_dummy_codes", broken)

    with pytest.raises(ValueError, match="internal bug"):
        client.get("/cards/front.pdf?num_pages=1")


def test_two_apps_share_the_process_wide_db_path(app, tmp_path):
    from tabletent.app import create_app

    other = create_app({"DB_PATH": str(tmp_path / "other.db")})

    assert other.config["DB_PATH"] == db.DB_PATH
    assert app.config["DB_PATH"] != db.DB_PATH
