from datetime import datetime, timezone

from flask import jsonify

from app.routes.main import bp


@bp.route("/health")
def health():
    return jsonify({"status": "OK", "timestamp": datetime.now(timezone.utc).isoformat()})
