import base64
import logging
import os
from typing import Dict, Optional

from flask import (
    Flask,
    Response,
    abort,
    jsonify,
    render_template,
    request,
)
import yaml

from . import db, models
from .codes import generate_dummy_codes
from .errors import InvalidCount, InvalidLayout, MalformedInput, StoreUnavailable
from .layout import REQUEST_OPTIONS, LayoutConfig, load_layout, required_codes
from .render import render_back, render_front

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
SETTINGS_PATH = os.path.join(BASE_DIR, "config_settings.yml")

logger = logging.getLogger(__name__)

# query args that are flags rather than layout options
NON_LAYOUT_ARGS = {"dummy"}


def load_settings() -> Dict:
    if not os.path.exists(SETTINGS_PATH):
        return {}
    with open(SETTINGS_PATH, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _resolve_db_path(settings: Dict) -> str:
    path = os.environ.get("TABLETENT_DB_PATH") or settings.get("DB_PATH")
    if not path:
        return db.DB_PATH
    if not os.path.isabs(path):
        path = os.path.join(BASE_DIR, path)
    return path


def parse_count(raw: Optional[str], max_count: int) -> int:
    try:
        count = int(raw)
    except (TypeError, ValueError):
        count = None
    if count is None or count < 0 or count > max_count:
        raise InvalidCount(
            f"`count` query param must be an integer between 0-{max_count}"
        )
    return count


def _is_true(value: Optional[str]) -> bool:
    return (value or "").lower() == "true"


def create_app(settings: Optional[Dict] = None):
    """
    Build the Flask app.

    The database location is process-wide: it is recorded in
    app.config["DB_PATH"] and installed as db.DB_PATH, so the last app
    created in a process decides which database every app uses.
    """
    app = Flask(
        __name__,
        static_folder="static",
        template_folder="templates",
    )

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    merged = load_settings()
    merged.update(settings or {})
    app.config["SECRET_KEY"] = merged.get("SECRET_KEY", "change-me")
    app.config["SITE_NAME"] = merged.get("SITE_NAME", "Table Tents")
    app.config["MAX_CODES_PER_REQUEST"] = int(merged.get("MAX_CODES_PER_REQUEST", 1000))
    app.config["LAYOUT"] = load_layout(merged.get("LAYOUT_PATH"))
    app.config["DB_PATH"] = _resolve_db_path(merged)

    db.DB_PATH = app.config["DB_PATH"]
    # Ensure the table exists; seeding is a separate job
    db.init_db()

    @app.context_processor
    def inject_globals():
        return {"SITE_NAME": app.config["SITE_NAME"]}

    def layout_from_request() -> LayoutConfig:
        overrides = {
            k: v
            for k, v in request.values.items()
            if k not in NON_LAYOUT_ARGS and v != ""
        }
        layout = app.config["LAYOUT"].with_overrides(
            overrides, allowed=REQUEST_OPTIONS
        )
        # one code per box, dummy or not, so the page count is capped too
        max_codes = app.config["MAX_CODES_PER_REQUEST"]
        if required_codes(layout) > max_codes:
            raise InvalidLayout(
                f"num_pages * num_boxes_per_page must not exceed {max_codes}"
            )
        return layout

    def codes_for_front(layout: LayoutConfig):
        needed = required_codes(layout)
        if request.values.get("dummy", "true").lower() != "false":
            return generate_dummy_codes(needed)
        # real codes are only claimed by POST, never by a link or prefetch
        if request.method != "POST":
            abort(405)
        return models.allocate_codes(needed)

    # ----------------- Errors -----------------

    @app.errorhandler(InvalidCount)
    @app.errorhandler(InvalidLayout)
    @app.errorhandler(MalformedInput)
    def handle_client_error(e):
        return jsonify({"error": str(e)}), 400

    @app.errorhandler(StoreUnavailable)
    def handle_store_unavailable(e):
        logger.error(f"Code store unavailable: {e}")
        return jsonify({"error": "Internal server error"}), 500

    # ----------------- Routes -----------------

    @app.route("/")
    def home():
        layout = layout_from_request()
        front = render_front(generate_dummy_codes(required_codes(layout)), layout)
        back = render_back(layout)
        return render_template(
            "index.html",
            layout=layout,
            front_pdf=base64.b64encode(front).decode("ascii"),
            back_pdf=base64.b64encode(back).decode("ascii"),
        )

    @app.route("/health")
    def health():
        return {"ok": True, "db_initialized": db.is_db_initialized()}

    @app.route("/api/unique-codes")
    def api_unique_codes():
        """
        Return `count` unique codes as a JSON array.

        - count: number of codes, 0 to MAX_CODES_PER_REQUEST.
        - dummy: 'true' for throwaway codes that don't touch the pool.

        The array can be shorter than `count` once the pool runs low;
        X-Codes-Requested / X-Codes-Returned tell the two apart.
        """
        count = parse_count(
            request.args.get("count"), app.config["MAX_CODES_PER_REQUEST"]
        )

        if _is_true(request.args.get("dummy")):
            codes = generate_dummy_codes(count)
        else:
            codes = models.allocate_codes(count)

        resp = jsonify(codes)
        resp.headers["X-Codes-Requested"] = str(count)
        resp.headers["X-Codes-Returned"] = str(len(codes))
        return resp

    @app.route("/cards/front.pdf", methods=["GET", "POST"])
    def cards_front():
        layout = layout_from_request()
        pdf = render_front(codes_for_front(layout), layout)
        return Response(pdf, mimetype="application/pdf")

    @app.route("/cards/back.pdf")
    def cards_back():
        pdf = render_back(layout_from_request())
        return Response(pdf, mimetype="application/pdf")

    return app


if __name__ == "__main__":
    app = create_app()
    app.run(host="0.0.0.0", port=1337, debug=True)
