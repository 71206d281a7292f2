# server.py
import asyncio
import io
import logging
import os
import re
from pathlib import Path
from typing import Optional

from flask import Flask, request, jsonify, send_file
from flask_cors import CORS

from application.dto.trim_dto import AudioSource, EncodedArtifact
from infrastructure.audio.pydub_audio_platform import PydubAudioPlatform
from infrastructure.web.upload_client import HttpUploadClient
from trimmer.core import trim_and_upload, trim_audio_file
from trimmer.errors import (
    DecodeError,
    InvalidRangeError,
    TrimError,
    UploadError,
)
from trimmer.utils import DEFAULT_API_BASE, DEFAULT_UPLOAD_TIMEOUT, sniff_format

# ── Logging ──────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger("audio_trimmer")

# ── Flask app ────────────────────────────────────────────────────────
app = Flask(__name__)

MAX_UPLOAD_BYTES: int = 100 * 1024 * 1024  # 100 MB
app.config["MAX_CONTENT_LENGTH"] = MAX_UPLOAD_BYTES

CORS(app, resources={
    r"/trim": {"origins": ["http://localhost:5173", "http://127.0.0.1:5173"]},
})

app.config["SECRET_KEY"] = os.environ.get("FLASK_SECRET_KEY") or os.urandom(32)
app.config["UPLOAD_API_BASE"] = os.environ.get("UPLOAD_API_BASE", DEFAULT_API_BASE)

# Stateless; safe to share across requests
_platform = PydubAudioPlatform()


# ════════════════════════════════════════════════════════════════════
# Request helpers
# ════════════════════════════════════════════════════════════════════

def _sanitize_filename(name: str) -> str:
    """Strip path components, control chars, and limit length."""
    name = Path(name).name                        # strip directory traversal
    name = re.sub(r"[^\w\s\-.]", "", name)        # only safe chars
    name = re.sub(r"\.{2,}", ".", name)            # no double-extension tricks
    return name[:128].strip()


def _parse_time(value: Optional[str]) -> Optional[float]:
    """Parse an optional form time value. Raises ValueError on garbage."""
    if value is None or not value.strip():
        return None
    return float(value)


def _upload_timeout() -> float:
    try:
        return float(os.environ.get("UPLOAD_TIMEOUT_SECONDS", DEFAULT_UPLOAD_TIMEOUT))
    except ValueError:
        return DEFAULT_UPLOAD_TIMEOUT


def get_uploader() -> HttpUploadClient:
    return HttpUploadClient(app.config["UPLOAD_API_BASE"], timeout=_upload_timeout())


# ════════════════════════════════════════════════════════════════════
# Routes
# ════════════════════════════════════════════════════════════════════

@app.route("/trim", methods=["POST"])
def trim():
    """
    POST /trim
    Form fields:
      - file     : audio file (multipart)
      - start    : selection start, seconds (or ms when > 1000)
      - end      : selection end, seconds (or ms when > 1000)
      - filename : optional name for the result (extension becomes .wav)
      - upload   : "true" to forward the WAV to the file service
    Returns: the WAV as an attachment, or the file service's JSON (201).
    """
    if "file" not in request.files:
        return jsonify({"error": "No file uploaded."}), 400

    audio_file = request.files["file"]
    content: bytes = audio_file.read()

    if not content:
        return jsonify({"error": "Empty file uploaded."}), 400

    if sniff_format(content[:16]) is None:
        logger.warning(
            "trim rejected ip=%s reason=invalid_magic_bytes",
            request.remote_addr,
        )
        return jsonify({"error": "Unsupported or invalid audio file."}), 415

    try:
        start = _parse_time(request.form.get("start"))
        end = _parse_time(request.form.get("end"))
    except ValueError:
        return jsonify({"error": "start and end must be numbers."}), 400

    source = AudioSource(
        content=content,
        mime_type=audio_file.mimetype or "",
        name=_sanitize_filename(audio_file.filename or ""),
    )
    target_name: str = _sanitize_filename(request.form.get("filename", ""))
    want_upload: bool = request.form.get("upload", "").lower() == "true"

    logger.info(
        "trim accepted ip=%s size=%dB start=%s end=%s upload=%s",
        request.remote_addr, len(content), start, end, want_upload,
    )

    try:
        if want_upload:
            artifact, payload = asyncio.run(
                trim_and_upload(
                    source, start, end, get_uploader(), target_name or None, platform=_platform
                )
            )
            return jsonify(payload or {"name": artifact.name}), 201
        artifact: EncodedArtifact = asyncio.run(
            trim_audio_file(source, start, end, target_name or None, platform=_platform)
        )
    except InvalidRangeError as e:
        return jsonify({"error": str(e)}), 400
    except DecodeError as e:
        logger.warning("trim rejected ip=%s reason=decode_error", request.remote_addr)
        return jsonify({"error": str(e)}), 415
    except UploadError as e:
        logger.error("upload failed status=%d: %s", e.status_code, e)
        return jsonify({"error": str(e)}), 502
    except TrimError as e:
        logger.error("trim failed: %s", e)
        return jsonify({"error": "Could not trim this file."}), 500

    logger.info("trim completed name=%s size=%dB", artifact.name, artifact.size)
    return send_file(
        io.BytesIO(artifact.content),
        mimetype=artifact.mime_type,
        as_attachment=True,
        download_name=artifact.name,
    )


# ════════════════════════════════════════════════════════════════════
# Error handlers & Security headers
# ════════════════════════════════════════════════════════════════════

@app.errorhandler(413)
def request_entity_too_large(e):
    return jsonify({"error": "File too large. Maximum size is 100 MB."}), 413


@app.errorhandler(404)
def not_found(e):
    path = request.path
    suspicious = any(p in path for p in ["..", "etc", "passwd", "wp-admin", ".env"])
    if suspicious:
        logger.warning("suspicious 404 ip=%s path=%s", request.remote_addr, path)
    return jsonify({"error": "Not found."}), 404


@app.errorhandler(405)
def method_not_allowed(e):
    return jsonify({"error": "Method not allowed."}), 405


@app.errorhandler(Exception)
def handle_exception(e):
    """Generic handler; never leak internal details to client."""
    logger.error("unhandled exception: %s", e, exc_info=True)
    return jsonify({"error": "An internal error occurred."}), 500


@app.after_request
def set_security_headers(response):
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


# ════════════════════════════════════════════════════════════════════
# Entry point
# ════════════════════════════════════════════════════════════════════

if __name__ == "__main__":
    debug_mode = os.environ.get("FLASK_DEBUG", "false").lower() == "true"
    app.run(debug=debug_mode, port=5000)
