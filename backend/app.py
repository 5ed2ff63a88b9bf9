import base64
import logging

from flask import Blueprint, Flask, current_app, jsonify, request
from flask_cors import CORS
from pydantic import ValidationError
from dotenv import load_dotenv

from config import Settings
from services.errors import ErrorInfo, InvalidInput, normalize_error
from services.gateway import ModelGateway
from services.pipeline import RecipePipeline
from services.storage import ListStore, ScanStore
from schemas.dto import (
    ErrorResponse, GenerateResponse, IdentifyRequest, SaveListRequest
)

load_dotenv()

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

bp = Blueprint("api", __name__)

def ok(payload: dict, status=200): return jsonify(payload), status
def err(info: ErrorInfo):
    return jsonify(ErrorResponse(error=info.message, raw=info.raw).model_dump(exclude_none=True)), info.code
def bad_request(message="bad request"): return err(ErrorInfo(400, message))

def pipeline() -> RecipePipeline: return current_app.config["PIPELINE"]
def lists() -> ListStore: return current_app.config["LIST_STORE"]
def scans() -> ScanStore: return current_app.config["SCAN_STORE"]

# --- Routes ---

@bp.get("/health")
def health():
    return ok({"status": "ok", "provider": pipeline().gateway.config.name})

@bp.post("/ai")
def generate():
    body = request.get_json(silent=True)
    items = body.get("items") if isinstance(body, dict) else None

    result = pipeline().generate(items, on_invalid_output=request.args.get("on_invalid"))
    if not result.ok:
        return err(result.error)
    return ok(GenerateResponse(recipes=result.recipes).model_dump())

@bp.post("/ai/identify")
def identify():
    if "image" in request.files:
        f = request.files["image"]
        image_b64 = base64.b64encode(f.read()).decode("ascii")
        mime_type = f.mimetype or "image/jpeg"
    else:
        try:
            payload = IdentifyRequest.model_validate(request.get_json(silent=True) or {})
        except ValidationError:
            return err(normalize_error(InvalidInput("image is required")))
        image_b64, mime_type = payload.image_base64, payload.mime_type

    result = pipeline().identify(image_b64, mime_type)
    if not result.ok:
        return err(result.error)
    return ok(result.item.model_dump())

@bp.get("/api/lists")
def get_lists():
    return ok({"lists": [l.model_dump() for l in lists().all()]})

@bp.post("/api/lists")
def save_list():
    try:
        payload = SaveListRequest.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return bad_request(e.errors()[0]["msg"])

    saved = lists().save(payload.name, payload.description, payload.items)
    return ok(saved.model_dump(), 201)

@bp.delete("/api/lists/<list_id>")
def delete_list(list_id):
    if not lists().delete(list_id):
        return err(ErrorInfo(404, "list not found"))
    return ok({"deleted": list_id})

@bp.get("/api/scans")
def get_scans():
    return ok({"items": [i.model_dump() for i in scans().load()]})

@bp.post("/api/scans")
def add_scan():
    if "image" not in request.files:
        return bad_request("image is required")
    name = (request.form.get("name") or "").strip()
    if not name:
        return bad_request("name is required")

    path = scans().save_photo(request.files["image"].stream)
    item = scans().add(path, name=name[:30], description=(request.form.get("description") or "").strip()[:30])
    return ok(item.model_dump(), 201)

@bp.delete("/api/scans")
def clear_scans():
    return ok({"cleared": scans().clear()})


def create_app(settings: Settings = None, gateway: ModelGateway = None) -> Flask:
    settings = settings or Settings.from_env()

    app = Flask(__name__)
    CORS(app)
    app.config["MAX_CONTENT_LENGTH"] = 5 * 1024 * 1024
    app.config["SETTINGS"] = settings
    app.config["PIPELINE"] = RecipePipeline(
        gateway or ModelGateway(settings.provider),
        on_invalid_output=settings.invalid_output_mode,
    )
    app.config["LIST_STORE"] = ListStore(settings.data_dir)
    app.config["SCAN_STORE"] = ScanStore(settings.data_dir)
    app.register_blueprint(bp)

    app.logger.info("Using %s model %s", settings.provider.name, settings.provider.model)
    return app


if __name__ == "__main__":
    settings = Settings.from_env()
    create_app(settings).run(host="0.0.0.0", port=settings.port, debug=True)
