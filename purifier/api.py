"""Flask blueprint implementing the purifier APIs."""

from __future__ import annotations

import logging
from urllib.parse import quote

from flask import Blueprint, Response, jsonify, request, session

from .errors import DocumentError
from .export import to_csv, to_json, to_txt, to_xlsx
from .session import SessionController
from .storage import cleanup_session, get_or_create_session

logger = logging.getLogger(__name__)

purifier_bp = Blueprint("purifier", __name__, url_prefix="/api")

SESSION_KEY = "purifier_sid"


def current_controller() -> SessionController:
    session_id, controller = get_or_create_session(session.get(SESSION_KEY))
    session[SESSION_KEY] = session_id
    return controller


def _state_response(controller: SessionController, **extra):
    payload = controller.snapshot()
    payload.update(extra)
    return jsonify(payload)


def _attachment(filename: str) -> dict:
    return {"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"}


@purifier_bp.route("/health")
def health():
    return jsonify({"status": "ok"})


@purifier_bp.route("/state")
def get_state():
    return _state_response(current_controller())


@purifier_bp.route("/upload", methods=["POST"])
def upload():
    controller = current_controller()
    if "file" not in request.files:
        return jsonify({"error": "No file provided"}), 400
    file = request.files["file"]
    if file.filename == "":
        return jsonify({"error": "No file selected"}), 400

    try:
        controller.load_file(file.stream, file.filename)
    except DocumentError as exc:
        logger.info("Rejected upload %s: %s", file.filename, exc)
        return jsonify({"error": str(exc)}), 400

    return _state_response(controller, success=True)


@purifier_bp.route("/purify", methods=["POST"])
def start_purify():
    controller = current_controller()
    payload = request.get_json(silent=True) or {}
    if "hints" in payload:
        controller.set_hints(str(payload["hints"]))

    if not controller.start_purification():
        cooldown = controller.cooldown_seconds
        message = (
            f"Cooling down, try again in {cooldown}s" if cooldown else "Nothing to purify right now"
        )
        return jsonify({"error": message, "cooldownSeconds": cooldown}), 409

    return _state_response(controller, success=True)


@purifier_bp.route("/hints", methods=["POST"])
def update_hints():
    controller = current_controller()
    payload = request.get_json(silent=True) or {}
    controller.set_hints(str(payload.get("hints", "")))
    return jsonify({"success": True})


@purifier_bp.route("/edit", methods=["POST"])
def edit_text():
    controller = current_controller()
    payload = request.get_json(silent=True) or {}
    target = payload.get("target", "purified")
    text = payload.get("text")
    if not isinstance(text, str):
        return jsonify({"error": "Missing text field"}), 400

    if target == "original":
        controller.edit_original_text(text)
    elif target == "purified":
        controller.edit_purified_text(text)
    else:
        return jsonify({"error": "Invalid target. Must be 'original' or 'purified'"}), 400
    return _state_response(controller, success=True)


@purifier_bp.route("/dismiss-error", methods=["POST"])
def dismiss_error():
    controller = current_controller()
    controller.dismiss_error()
    return _state_response(controller, success=True)


@purifier_bp.route("/reset", methods=["POST"])
def reset():
    controller = current_controller()
    cleared = controller.reset()
    if cleared:
        cleanup_session(session.pop(SESSION_KEY, None))
    return _state_response(controller, success=True, cleared=cleared)


@purifier_bp.route("/download")
def download():
    controller = current_controller()
    prepared = controller.download()
    if prepared is None:
        return jsonify({"error": "Nothing to download"}), 404
    filename, content = prepared
    return Response(
        to_txt(content),
        mimetype="text/plain; charset=utf-8",
        headers=_attachment(filename),
    )


def _export_name(controller: SessionController, extension: str) -> str:
    stem = controller.state.file_name.rsplit(".", 1)[0] or "transcript"
    return f"corrections_{stem}.{extension}"


@purifier_bp.route("/corrections")
def export_corrections():
    controller = current_controller()
    result = controller.state.purified_result
    if result is None:
        return jsonify({"error": "No purification result yet"}), 404

    fmt = request.args.get("format", "json").lower()
    if fmt == "csv":
        filename = _export_name(controller, "csv")
        return Response(to_csv(result.corrections), mimetype="text/csv", headers=_attachment(filename))
    if fmt == "xlsx":
        filename = _export_name(controller, "xlsx")
        return Response(
            to_xlsx(result.corrections),
            mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            headers=_attachment(filename),
        )

    return jsonify(
        {
            "corrections": to_json(result.corrections),
            "uncertainParts": list(result.uncertain_parts),
        }
    )
