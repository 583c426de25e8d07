# app.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from flask import Flask, Response, jsonify, request
from flask_cors import CORS

from motion_backend.config import Settings, load_settings
from motion_backend.mapping import RangeMapper
from motion_backend.schemas import ErrorOut, LatestOut, MotionUpdateIn, StartOut, UpdateOut
from motion_backend.smoothing import SampleSmoother
from services.errors import MotionBridgeError
from services.readout import MotionReadout
from services.session_store import SessionStore
from services.sweeper import SessionSweeper

# --------------------- Paths & Config ---------------------
ROOT = Path(__file__).parent.resolve()
settings = load_settings(ROOT / "config" / "settings.yaml")

# Setup logging
logging.basicConfig(
    level=getattr(logging, settings.server.log_level, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def _text(body: str) -> Response:
    return Response(body, status=200, mimetype="text/plain")


# --------------------- App factory ---------------------
def create_app(
    settings: Settings,
    store: Optional[SessionStore] = None,
    clock: Optional[Callable[[], float]] = None,
) -> Flask:
    """
    Build the Flask app around one SessionStore.
    The store, mapper, readout and sweeper hang off app.extensions["motion"].
    The sweeper thread starts here unless session.sweep_autostart is off.
    """
    app = Flask(__name__)

    # PictoBlox polls from a browser sandbox on another origin
    CORS(
        app,
        origins="*",
        send_wildcard=True,
        methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Accept"],
    )

    if store is None:
        store = SessionStore.from_settings(
            settings.session, SampleSmoother.from_settings(settings.smoothing), clock=clock
        )
    mapper = RangeMapper.from_settings(settings.mapping)
    readout = MotionReadout(store, mapper, read_ttl=settings.session.read_ttl_s)
    sweeper = SessionSweeper(
        store,
        interval=settings.session.sweep_interval_s,
        ttl=settings.session.ttl_s,
        max_sessions=settings.session.max_sessions,
    )
    app.extensions["motion"] = {
        "settings": settings,
        "store": store,
        "mapper": mapper,
        "readout": readout,
        "sweeper": sweeper,
    }
    if settings.session.sweep_autostart:
        sweeper.start()

    @app.after_request
    def no_cache(resp):
        resp.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
        return resp

    @app.errorhandler(MotionBridgeError)
    def on_motion_error(err: MotionBridgeError):
        logger.info(f"{request.method} {request.path} -> {err.code}: {err.message}")
        return jsonify(ErrorOut.of(err)), err.status_code

    # --------------------- Write path ---------------------
    @app.post("/start")
    def start_session():
        token = store.create()
        return jsonify(StartOut.of(token))

    @app.post("/update")
    def update_session():
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            payload = request.form.to_dict()
        body = MotionUpdateIn.parse(payload, known=lambda t: t in store)
        result = store.update(body.token, body.x, body.y)
        return jsonify(UpdateOut.of(result.throttled))

    # --------------------- Polling reads (never error) ---------------------
    @app.get("/simple/<token>")
    def read_scale(token):
        return _text(readout.scale(token))

    @app.get("/x/<token>")
    def read_x(token):
        return _text(str(readout.axis(token, "x")))

    @app.get("/y/<token>")
    def read_y(token):
        return _text(str(readout.axis(token, "y")))

    @app.get("/latest/<token>")
    def read_latest(token):
        data = readout.latest(token)
        if data is None:
            return jsonify({"error": "Session not found or expired"}), 404
        return jsonify(LatestOut(**data).model_dump())

    # --------------------- Diagnostics ---------------------
    @app.get("/health")
    def health():
        return jsonify({
            "status": "ok",
            "sweeper_running": sweeper.running,
            **store.stats(),
        })

    @app.get("/debug/sessions")
    def debug_sessions():
        now = store.now()
        items = sorted((s.summary(now) for s in store.sessions()), key=lambda d: d["age_s"])
        return jsonify({"count": len(items), "items": items})

    return app


app = create_app(settings)

# --------------------- Main ---------------------
if __name__ == "__main__":
    logger.info(f"Motion bridge listening on {settings.server.host}:{settings.server.port}")
    app.run(host=settings.server.host, port=settings.server.port, threaded=True)
