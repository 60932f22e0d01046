"""
Flask API Module
Public site endpoints:
- Home, menu routing, products and content pages
- Video gallery
- Community board (posts, comments, image upload)
- Login / signup and the notice popup
- AI trip quote
- Sync status badge
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional

from flask import Flask, jsonify, request
from flask_cors import CORS
from pydantic import ValidationError as PydanticValidationError

from services import upload_service
from services.registry import get_services
from utils.errors import LoginRequiredError, MangoTourError, ValidationError
from utils.models import TripPlanRequest

logger = logging.getLogger("FlaskAPI")

# Initialize Flask app
app = Flask(__name__)
CORS(app, resources={r"/*": {"origins": "*"}})

# Suppress Flask/Werkzeug standard logs
logging.getLogger('werkzeug').setLevel(logging.ERROR)

SESSION_HEADER = "X-Session-Id"

# Services will be set from main.py
services = None


def set_services(s):
    """Set the shared service registry"""
    global services
    services = s


def _services():
    return services or get_services()


@app.errorhandler(MangoTourError)
def handle_mango_tour_error(e):
    logger.info(f"[FLASK] {request.method} {request.path} -> {e.kind}: {e.user_message}")
    return jsonify(e.to_dict()), e.status_code


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def bearer_token():
    """Token from the Authorization header, if any"""
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return None


def current_user():
    return _services().auth.current_user(bearer_token())


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def json_flag(data: dict, key: str) -> Optional[bool]:
    """A JSON boolean field; strings like "false" count as absent"""
    value = data.get(key)
    return value if isinstance(value, bool) else None


def post_view(post) -> dict:
    """Opened post: full content, never the password"""
    doc = post.to_document()
    doc.pop("password", None)
    return doc


def visible_popup():
    """The popup when it is active and this client has not dismissed it"""
    s = _services()
    popup = s.controller.get_popup()
    if not popup.is_active or s.auth.is_popup_dismissed(request.headers.get(SESSION_HEADER)):
        return None
    return popup.to_document()


# ============================================================================
# SITE ROUTES
# ============================================================================

@app.route('/')
def home():
    """Landing data: hero slider, menu, popup and sync mode"""
    s = _services()
    data = s.controller.snapshot()
    return jsonify({
        "site": s.config.SITE_NAME,
        "mode": s.controller.status_badge(),
        "heroImages": data.hero_images,
        "menuItems": [m.to_document() for m in data.menu_items],
        "popup": visible_popup(),
    })


@app.route('/health')
@app.route('/api/health')
def health():
    """Health check endpoint for monitoring"""
    controller = _services().controller
    is_healthy = controller.is_loaded
    response = {
        "status": "healthy" if is_healthy else "loading",
        "timestamp": datetime.now().isoformat(),
        "mode": controller.status_badge(),
    }
    return jsonify(response), 200 if is_healthy else 503


@app.route('/status')
def status():
    """Sync badge as plain text"""
    return _services().controller.status_badge()


@app.route('/api/status')
def api_status():
    s = _services()
    return jsonify({
        "badge": s.controller.status_badge(),
        "isUsingLocalFallback": s.controller.is_local_mode,
        "keys": s.tracker.get_all_status(),
    })


# --- MENU / CATALOG ROUTES ---

@app.route('/api/menu')
def api_menu():
    data = _services().controller.snapshot()
    return jsonify([m.to_document() for m in data.menu_items])


@app.route('/api/menu/<path:label>')
def api_menu_route(label):
    """Where a menu label leads, with the content to show"""
    route = _services().controller.resolve_menu(label)
    if "products" in route:
        route["products"] = [p.to_document() for p in route["products"]]
    if "page" in route:
        route["page"] = route["page"].to_document()
    return jsonify(route)


@app.route('/api/products')
def api_products():
    category = request.args.get('category')
    return jsonify([p.to_document() for p in _services().controller.list_products(category)])


@app.route('/api/products/<product_id>')
def api_product(product_id):
    return jsonify(_services().controller.get_product(product_id).to_document())


@app.route('/api/pages/<page_id>')
def api_page(page_id):
    return jsonify(_services().controller.get_page(page_id).to_document())


@app.route('/api/videos')
def api_videos():
    category = request.args.get('category')
    return jsonify([v.to_document() for v in _services().controller.list_videos(category)])


# --- COMMUNITY ROUTES ---

@app.route('/api/community/posts', methods=['GET'])
def list_posts():
    """Board listing; private posts are masked"""
    return jsonify([p.public_view() for p in _services().controller.list_posts()])


@app.route('/api/community/posts', methods=['POST'])
def create_post():
    data = json_body()
    post = _services().controller.create_post(
        current_user(),
        data.get("title", ""),
        data.get("content", ""),
        image=data.get("image"),
        is_private=json_flag(data, "isPrivate") is True,
        password=data.get("password"),
    )
    return jsonify(post_view(post)), 201


@app.route('/api/community/posts/<post_id>/open', methods=['POST'])
def open_post(post_id):
    """Read a post; counts one view. Private posts may need a password."""
    data = json_body()
    post = _services().controller.open_post(post_id, current_user(), password=data.get("password"))
    return jsonify(post_view(post))


@app.route('/api/community/posts/<post_id>', methods=['PUT'])
def edit_post(post_id):
    data = json_body()
    post = _services().controller.edit_post(
        post_id,
        current_user(),
        data.get("title", ""),
        data.get("content", ""),
        image=data.get("image"),
        is_private=json_flag(data, "isPrivate"),
        password=data.get("password"),
    )
    return jsonify(post_view(post))


@app.route('/api/community/posts/<post_id>', methods=['DELETE'])
def delete_post(post_id):
    _services().controller.delete_post(post_id, current_user())
    return '', 204


@app.route('/api/community/posts/<post_id>/comments', methods=['POST'])
def add_comment(post_id):
    post = _services().controller.add_comment(post_id, current_user(), json_body().get("content", ""))
    return jsonify(post_view(post)), 201


@app.route('/api/community/uploads', methods=['POST'])
def upload_image():
    """Attach a photo to a post; returns the uploaded URL"""
    s = _services()
    if current_user() is None:
        raise LoginRequiredError("Log in to attach photos.")
    file = request.files.get("file")
    if file is None:
        raise ValidationError("Choose a file to upload.")

    upload = upload_service.UploadFile(
        filename=file.filename or "photo",
        content=file.read(),
        content_type=file.mimetype,
    )
    url = asyncio.run(s.uploads.upload(upload, folder="community"))
    return jsonify({"url": url}), 201


# --- AUTH ROUTES ---

@app.route('/api/auth/login', methods=['POST'])
def login():
    data = json_body()
    token, user = _services().auth.login(data.get("username", ""), data.get("password"))
    return jsonify({"token": token, "user": user.public_view()})


@app.route('/api/auth/signup', methods=['POST'])
def signup():
    data = json_body()
    token, user = _services().auth.signup(
        data.get("username", ""), data.get("password", ""), data.get("nickname", "")
    )
    return jsonify({"token": token, "user": user.public_view()}), 201


@app.route('/api/auth/logout', methods=['POST'])
def logout():
    _services().auth.logout(bearer_token())
    return '', 204


@app.route('/api/auth/me')
def me():
    user = _services().auth.require_user(bearer_token())
    return jsonify(user.public_view())


# --- POPUP ROUTES ---

@app.route('/api/popup')
def api_popup():
    return jsonify({"popup": visible_popup()})


@app.route('/api/popup/dismiss', methods=['POST'])
def dismiss_popup():
    """Do not show the popup to this client session again"""
    _services().auth.dismiss_popup(request.headers.get(SESSION_HEADER))
    return '', 204


# --- TRIP QUOTE ROUTE ---

@app.route('/api/trip-plan', methods=['POST'])
def trip_plan():
    """AI quote; falls back to a locally computed example quote"""
    try:
        trip_request = TripPlanRequest.model_validate(json_body())
    except PydanticValidationError as e:
        raise ValidationError("Fill in destination, theme, accommodation and duration.", detail=str(e)) from e

    result = asyncio.run(_services().controller.generate_trip_plan(trip_request))
    return jsonify(result.to_document())


def run_flask_app(host='0.0.0.0', port=8100):
    """Run Flask app"""
    logger.info(f"[FLASK] Starting site API on {host}:{port}...")
    app.run(host=host, port=port, debug=False, use_reloader=False)
