from __future__ import annotations

import logging
import threading
from typing import Any, Dict

from flask import Flask, Response, jsonify, request

from .chromaticity import DICHROMATS, confusion_lines, get_dichromat
from .figures import figure_png
from .tutorial import FIGURE_NAMES, TutorialConfig, TutorialResult, build_figures, run_tutorial

log = logging.getLogger(__name__)

MAX_POINTS = 512


def _tolist(a) -> list:
    return a.tolist()


def transform_payload(result: TutorialResult) -> Dict[str, Any]:
    t = result.transform
    return {
        "cmf_to_cones": _tolist(t.cmf_to_cones),
        "cones_to_cmf": _tolist(t.cones_to_cmf),
        "isolating_directions": _tolist(result.isolating_dirs),
        "response_vectors": _tolist(result.response_vectors),
        "angles": result.angles,
    }


# ----------------------------- Flask app ----------------------------------


def create_app(config: TutorialConfig | None = None) -> Flask:
    app = Flask(__name__)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

    lock = threading.Lock()
    cache: Dict[str, Any] = {}

    def result() -> TutorialResult:
        # computed once, on first request
        with lock:
            if "result" not in cache:
                cache["result"] = run_tutorial(config)
            return cache["result"]

    @app.route("/transform")
    def transform():
        try:
            payload = transform_payload(result())
        except Exception as exc:
            log.exception("Tutorial computation failed")
            return jsonify({"error": str(exc)}), 500
        return jsonify(payload)

    @app.route("/confusion/<name>")
    def confusion(name: str):
        try:
            d = get_dichromat(name)
        except ValueError as e:
            return (
                jsonify({"error": str(e), "supported": [x.name for x in DICHROMATS]}),
                400,
            )
        try:
            n = int(request.args.get("n", 100))
        except ValueError:
            return jsonify({"error": "n must be an integer"}), 400
        if not 2 <= n <= MAX_POINTS:
            return jsonify({"error": f"n must be in 2..{MAX_POINTS}"}), 400

        try:
            res = result()
            lines = confusion_lines(res.T_cmf_coarse, res.isolating_dirs, d, n)
        except Exception as exc:
            log.exception("Confusion lines failed")
            return jsonify({"error": str(exc)}), 500

        return jsonify(
            {
                "dichromat": d.name,
                "isolating": _tolist(res.isolating_chrom[:2, d.cone]),
                "lines": [_tolist(line[:2]) for line in lines],
            }
        )

    @app.route("/figures/<name>.png")
    def figure(name: str):
        if name not in FIGURE_NAMES:
            return jsonify({"error": f"unknown figure '{name}'", "supported": FIGURE_NAMES}), 404
        try:
            png = figure_png(build_figures(result(), [name])[name])
        except Exception as exc:
            log.exception("Figure rendering failed")
            return jsonify({"error": str(exc)}), 500
        return Response(png, mimetype="image/png")

    return app


if __name__ == "__main__":
    create_app().run(debug=False, threaded=True)
