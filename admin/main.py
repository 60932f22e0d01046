"""
FastAPI MANGO TOUR Admin Application
Back office API: authentication, content CRUD, uploads, Drive backup and
sync status. Every route except login, health and the Drive callback
requires an admin bearer token.
"""

import asyncio
import logging
import os
from typing import Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, Request, UploadFile, status
from fastapi.responses import HTMLResponse, JSONResponse

from admin.auth import ACCESS_TOKEN_EXPIRE_MINUTES, authenticate_user, security, verify_token
from admin.schemas import (
    ActivityPayload,
    ClassifyRequest,
    DriveConnectResponse,
    DriveTokenPayload,
    HeroImagesPayload,
    LoginRequest,
    MenuItemsPayload,
    PageContentsPayload,
    PageUpdate,
    PopupUpdate,
    ProductCreate,
    ProductUpdate,
    ReplyPayload,
    SectionCreate,
    SectionUpdate,
    Token,
    VideoCreate,
    VideoUpdate,
)
from services import upload_service
from services.registry import get_services
from utils.errors import MangoTourError, NotFoundError
from utils.models import User

logger = logging.getLogger("AdminAPI")

# Initialize FastAPI app
app = FastAPI(
    title="MANGO TOUR Admin API",
    description="Back office for the MANGO TOUR travel site",
    version="1.0.0"
)


@app.exception_handler(MangoTourError)
async def mango_tour_error_handler(request: Request, exc: MangoTourError):
    logger.warning(f"[ADMIN] {request.method} {request.url.path} -> {exc.kind}: {exc.user_message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def _product_fields(payload) -> dict:
    return payload.model_dump(exclude_none=True, exclude={"id"})


# ============================================================================
# STARTUP / SHUTDOWN
# ============================================================================

@app.on_event("startup")
async def startup_event():
    """Seed the user registry and load site data if nobody did yet"""
    logger.info("[STARTUP] Initializing admin back office...")
    services = get_services()
    services.auth.seed_users()

    if not services.controller.is_loaded:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, services.controller.load)

    logger.info(f"[STARTUP] Admin back office ready ({services.controller.status_badge()})")


@app.on_event("shutdown")
async def shutdown_event():
    get_services().controller.flush()


# ============================================================================
# AUTHENTICATION API ROUTES
# ============================================================================

@app.post("/admin/api/auth/login", response_model=Token)
def login(login_data: LoginRequest):
    """
    Authenticate the administrator and return a bearer token

    - **username**: Admin username
    - **password**: Admin password
    """
    result = authenticate_user(login_data.username, login_data.password)
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    access_token, _ = result
    return {
        "access_token": access_token,
        "token_type": "bearer",
        "expires_in_minutes": ACCESS_TOKEN_EXPIRE_MINUTES,
    }


@app.post("/admin/api/auth/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(credentials=Depends(security), _: User = Depends(verify_token)):
    get_services().auth.logout(credentials.credentials)
    return None


@app.get("/admin/api/users")
async def list_users(_: User = Depends(verify_token)):
    """Registered users, passwords removed"""
    return get_services().auth.list_users()


@app.get("/admin/api/data")
async def get_all_data(_: User = Depends(verify_token)):
    """Everything the site holds, as one camelCase document"""
    return get_services().controller.snapshot().to_document()


# ============================================================================
# PRODUCTS
# ============================================================================

@app.get("/admin/api/products")
async def list_products(category: Optional[str] = None, _: User = Depends(verify_token)):
    return [p.to_document() for p in get_services().controller.list_products(category)]


@app.get("/admin/api/products/{product_id}")
async def get_product(product_id: str, _: User = Depends(verify_token)):
    return get_services().controller.get_product(product_id).to_document()


@app.post("/admin/api/products", status_code=status.HTTP_201_CREATED)
async def create_product(product_data: ProductCreate, _: User = Depends(verify_token)):
    """
    Create a product. Missing fields get placeholder values the admin edits
    afterwards; ``id`` is generated unless given.
    """
    fields = product_data.model_dump(exclude_none=True)
    return get_services().controller.add_product(**fields).to_document()


@app.put("/admin/api/products/{product_id}")
async def update_product(product_id: str, product_data: ProductUpdate, _: User = Depends(verify_token)):
    """Partial update: only the fields present in the body change"""
    controller = get_services().controller
    return controller.update_product_fields(product_id, **_product_fields(product_data)).to_document()


@app.delete("/admin/api/products/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(product_id: str, _: User = Depends(verify_token)):
    get_services().controller.delete_product(product_id)
    return None


@app.post("/admin/api/products/{product_id}/itinerary", status_code=status.HTTP_201_CREATED)
async def add_itinerary_day(product_id: str, _: User = Depends(verify_token)):
    return get_services().controller.add_itinerary_day(product_id).to_document()


@app.delete("/admin/api/products/{product_id}/itinerary/{day_index}")
async def remove_itinerary_day(product_id: str, day_index: int, _: User = Depends(verify_token)):
    """Remove one day (0-based index); the remaining days are renumbered"""
    return get_services().controller.remove_itinerary_day(product_id, day_index).to_document()


@app.post("/admin/api/products/{product_id}/itinerary/{day_index}/activities",
          status_code=status.HTTP_201_CREATED)
async def add_activity(product_id: str, day_index: int, payload: ActivityPayload,
                       _: User = Depends(verify_token)):
    return get_services().controller.add_activity(product_id, day_index, payload.text).to_document()


@app.put("/admin/api/products/{product_id}/itinerary/{day_index}/activities/{activity_index}")
async def update_activity(product_id: str, day_index: int, activity_index: int, payload: ActivityPayload,
                          _: User = Depends(verify_token)):
    controller = get_services().controller
    return controller.update_activity(product_id, day_index, activity_index, payload.text or "").to_document()


@app.delete("/admin/api/products/{product_id}/itinerary/{day_index}/activities/{activity_index}")
async def remove_activity(product_id: str, day_index: int, activity_index: int,
                          _: User = Depends(verify_token)):
    return get_services().controller.remove_activity(product_id, day_index, activity_index).to_document()


# ============================================================================
# VIDEOS
# ============================================================================

@app.get("/admin/api/videos")
async def list_videos(category: Optional[str] = None, _: User = Depends(verify_token)):
    return [v.to_document() for v in get_services().controller.list_videos(category)]


@app.post("/admin/api/videos", status_code=status.HTTP_201_CREATED)
async def create_video(video_data: VideoCreate, _: User = Depends(verify_token)):
    """Add a video; without a category one is picked by the classifier"""
    video = await get_services().controller.add_video(
        video_data.title, video_data.url, video_data.category, video_data.description
    )
    return video.to_document()


@app.post("/admin/api/videos/classify")
async def classify_video(payload: ClassifyRequest, _: User = Depends(verify_token)):
    category = await get_services().controller.classify_video(payload.title, payload.description)
    return {"category": category}


@app.put("/admin/api/videos/{video_id}")
async def update_video(video_id: str, video_data: VideoUpdate, _: User = Depends(verify_token)):
    return get_services().controller.update_video(video_id, **video_data.model_dump()).to_document()


@app.delete("/admin/api/videos/{video_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_video(video_id: str, _: User = Depends(verify_token)):
    get_services().controller.delete_video(video_id)
    return None


# ============================================================================
# COMMUNITY
# ============================================================================

@app.get("/admin/api/posts")
async def list_posts(_: User = Depends(verify_token)):
    """Full posts, private content included"""
    return [p.to_document() for p in get_services().controller.list_posts()]


@app.put("/admin/api/posts/{post_id}/reply")
async def save_reply(post_id: str, payload: ReplyPayload, admin: User = Depends(verify_token)):
    return get_services().controller.save_admin_reply(post_id, admin, payload.reply).to_document()


@app.delete("/admin/api/posts/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(post_id: str, admin: User = Depends(verify_token)):
    get_services().controller.delete_post(post_id, admin)
    return None


# ============================================================================
# PAGES
# ============================================================================

@app.get("/admin/api/pages")
async def list_pages(_: User = Depends(verify_token)):
    pages = get_services().controller.snapshot().page_contents
    return {page_id: page.to_document() for page_id, page in pages.items()}


@app.put("/admin/api/pages")
async def replace_pages(payload: PageContentsPayload, _: User = Depends(verify_token)):
    pages = get_services().controller.update_page_contents(payload.pages)
    return {page_id: page.to_document() for page_id, page in pages.items()}


@app.get("/admin/api/pages/{page_id}")
async def get_page(page_id: str, _: User = Depends(verify_token)):
    return get_services().controller.get_page(page_id).to_document()


@app.put("/admin/api/pages/{page_id}")
async def update_page(page_id: str, page_data: PageUpdate, _: User = Depends(verify_token)):
    fields = page_data.model_dump(exclude_none=True)
    return get_services().controller.update_page(page_id, **fields).to_document()


@app.post("/admin/api/pages/{page_id}/sections", status_code=status.HTTP_201_CREATED)
async def add_section(page_id: str, section: SectionCreate, _: User = Depends(verify_token)):
    return get_services().controller.add_section(page_id, section.title, section.content).to_document()


@app.put("/admin/api/pages/{page_id}/sections/{index}")
async def update_section(page_id: str, index: int, section: SectionUpdate, _: User = Depends(verify_token)):
    fields = section.model_dump(exclude_none=True)
    return get_services().controller.update_section(page_id, index, **fields).to_document()


@app.delete("/admin/api/pages/{page_id}/sections/{index}")
async def remove_section(page_id: str, index: int, _: User = Depends(verify_token)):
    return get_services().controller.remove_section(page_id, index).to_document()


# ============================================================================
# SETTINGS / POPUP
# ============================================================================

@app.put("/admin/api/settings/hero-images")
async def update_hero_images(payload: HeroImagesPayload, _: User = Depends(verify_token)):
    return {"heroImages": get_services().controller.update_hero_images(payload.images)}


@app.put("/admin/api/settings/menu-items")
async def update_menu_items(payload: MenuItemsPayload, _: User = Depends(verify_token)):
    items = get_services().controller.update_menu_items(payload.items)
    return {"menuItems": [i.to_document() for i in items]}


@app.get("/admin/api/popup")
async def get_popup(_: User = Depends(verify_token)):
    return get_services().controller.get_popup().to_document()


@app.put("/admin/api/popup")
async def update_popup(popup_data: PopupUpdate, _: User = Depends(verify_token)):
    fields = popup_data.model_dump(exclude_none=True)
    return get_services().controller.update_popup(**fields).to_document()


# ============================================================================
# UPLOADS
# ============================================================================

@app.post("/admin/api/uploads", status_code=status.HTTP_201_CREATED)
async def upload(file: UploadFile = File(...), folder: str = Form("uploads"),
                 _: User = Depends(verify_token)):
    """Compress (images) and upload; returns the public URL"""
    content = await file.read()
    url = await get_services().uploads.upload(
        upload_service.UploadFile(
            filename=file.filename or "upload",
            content=content,
            content_type=file.content_type,
        ),
        folder=folder,
    )
    return {"url": url}


# ============================================================================
# GOOGLE DRIVE BACKUP
# ============================================================================

DRIVE_CALLBACK_PAGE = """<!doctype html>
<html><body>
<p id="msg">Completing Google sign-in...</p>
<script>
const params = new URLSearchParams(window.location.hash.substring(1));
fetch("/admin/api/drive/token", {
  method: "POST",
  headers: {"Content-Type": "application/json"},
  body: JSON.stringify({
    state: params.get("state"),
    access_token: params.get("access_token"),
    error: params.get("error")
  })
}).then(r => {
  document.getElementById("msg").textContent = r.ok
    ? "Google Drive connected. You can close this window."
    : "Google sign-in failed. Close this window and try again.";
});
</script>
</body></html>
"""


@app.post("/admin/api/drive/connect", response_model=DriveConnectResponse)
async def drive_connect(_: User = Depends(verify_token)):
    """Start the consent flow; the admin opens ``consent_url`` in a browser"""
    services = get_services()
    drive = services.drive
    if not drive.is_initialized:
        drive.init_client(services.config.GOOGLE_API_KEY)
    if drive.handshake is None:
        drive.init_token_client(services.config.GOOGLE_CLIENT_ID)
    consent_url = drive.request_access_token()
    return {"consent_url": consent_url, "state": drive.handshake.state_token}


@app.get("/admin/drive/callback", response_class=HTMLResponse)
async def drive_callback():
    """OAuth redirect target; forwards the URL fragment to the token endpoint"""
    return HTMLResponse(DRIVE_CALLBACK_PAGE)


@app.post("/admin/api/drive/token", status_code=status.HTTP_204_NO_CONTENT)
async def drive_token(payload: DriveTokenPayload):
    """Completes the pending handshake; the state value authenticates the call"""
    get_services().drive.receive_token(payload.state, payload.access_token, payload.error)
    return None


@app.post("/admin/api/drive/wait")
async def drive_wait(_: User = Depends(verify_token)):
    """Block until the consent popup finishes or the handshake times out"""
    services = get_services()
    handshake = services.drive.handshake
    if handshake is None:
        raise NotFoundError("No Google sign-in is in progress.")
    await handshake.wait(services.config.OAUTH_TIMEOUT_SECONDS)
    return {"status": handshake.status}


@app.get("/admin/api/drive/status")
async def drive_status(_: User = Depends(verify_token)):
    drive = get_services().drive
    return {
        "initialized": drive.is_initialized,
        "authorized": drive.is_authorized,
        "handshake": drive.handshake.status if drive.handshake else None,
        "filename": drive.filename,
    }


@app.post("/admin/api/drive/backup")
async def drive_backup(_: User = Depends(verify_token)):
    services = get_services()
    file_id = await services.drive.save_data(services.controller.backup_snapshot())
    return {"fileId": file_id, "filename": services.drive.filename}


@app.post("/admin/api/drive/restore")
async def drive_restore(_: User = Depends(verify_token)):
    services = get_services()
    data = await services.drive.load_data()
    if data is None:
        raise NotFoundError(f"No backup named '{services.drive.filename}' was found in Google Drive.")
    restored = services.controller.restore_snapshot(data)
    return {"restored": restored}


@app.post("/admin/api/drive/disconnect", status_code=status.HTTP_204_NO_CONTENT)
async def drive_disconnect(_: User = Depends(verify_token)):
    get_services().drive.disconnect()
    return None


# ============================================================================
# SYNC STATUS
# ============================================================================

@app.get("/admin/api/sync/status")
async def sync_status(_: User = Depends(verify_token)):
    services = get_services()
    return {
        "badge": services.controller.status_badge(),
        "provider": services.sync.provider if services.sync.is_configured else None,
        "pending": services.controller.pending_keys(),
        "keys": services.tracker.get_all_status(),
        "hasFailures": services.tracker.has_failures(),
    }


@app.get("/admin/api/notifications")
async def notifications(_: User = Depends(verify_token)):
    """Failure notifications since the last call"""
    return get_services().tracker.drain_notifications()


@app.post("/admin/api/sync/resync")
async def resync(_: User = Depends(verify_token)):
    loop = asyncio.get_running_loop()
    results = await loop.run_in_executor(None, get_services().controller.resync_all)
    return {"results": results}


@app.post("/admin/api/sync/flush")
async def flush(_: User = Depends(verify_token)):
    loop = asyncio.get_running_loop()
    flushed = await loop.run_in_executor(None, get_services().controller.flush)
    return {"flushed": flushed}


# ============================================================================
# HEALTH CHECK
# ============================================================================

@app.get("/admin/api/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "MANGO TOUR Admin API",
        "version": "1.0.0",
        "mode": get_services().controller.status_badge(),
    }


# ============================================================================
# RUN SERVER
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", "8200"))
    uvicorn.run(
        "admin.main:app",
        host="0.0.0.0",
        port=port,
        reload=True
    )
