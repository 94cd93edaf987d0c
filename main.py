import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Literal, Optional

import jwt
import requests
from fastapi import Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from jwt import exceptions as jwt_exc
from pydantic import BaseModel, ValidationError

from config_client import ConfigClient, ConfigError, LoginFailed, MalformedResponse, Unauthorized
from editors import (
    ConfirmationRequired,
    EditorNotReady,
    EditorRegistry,
    EntityNotFound,
    ListEditor,
    SaveInProgress,
    SectionEditor,
    UnknownField,
    ValidationFailure,
)
from page_gate import PageDisabled, PageGate
from renderers import (
    load_document,
    render_faq,
    render_footer,
    render_home,
    render_navbar,
    render_project,
    render_projects,
    render_team,
)
from schemas import DEFAULT_DOCUMENTS, DOCUMENT_MODELS, ConfigKey, PageName
from settings import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    CONFIG_API_BASE_URL,
    CORS_ORIGINS,
    JWT_ALGORITHM,
    JWT_SECRET,
    PORT,
    RATE_LIMIT_MAX,
    RATE_LIMIT_WINDOW,
    STORAGE_PATH,
    configure_logging,
)
from storage import LocalStorage, Preferences, SessionStore
from uploads import ImageUploadClient, UploadFailed

configure_logging()
logger = logging.getLogger(__name__)

LOGIN_URL = "/admin/login"
NOT_FOUND_URL = "/404"

# App and CORS
app = FastAPI(title="Kulana Site Content API")
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Services
@dataclass
class Services:
    session: SessionStore
    preferences: Preferences
    client: ConfigClient
    uploader: ImageUploadClient
    editors: EditorRegistry
    gate: PageGate


def build_services(storage_path: Optional[str] = STORAGE_PATH, http: Optional[requests.Session] = None) -> Services:
    storage = LocalStorage(storage_path)
    session = SessionStore(storage)
    client = ConfigClient(CONFIG_API_BASE_URL, session, http=http)
    return Services(
        session=session,
        preferences=Preferences(storage),
        client=client,
        uploader=ImageUploadClient(client),
        editors=EditorRegistry(client),
        gate=PageGate(client),
    )


services = build_services()


def get_services() -> Services:
    return services


# Helpers
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class LoginPayload(BaseModel):
    username: str
    password: str


class PreferencesPayload(BaseModel):
    language: Optional[Literal["en", "vi"]] = None
    theme: Optional[Literal["light", "dark"]] = None


class SectionUpdatePayload(BaseModel):
    path: str = ""
    changes: Dict[str, Any]


class TogglePayload(BaseModel):
    path: str = ""
    field: str = "enabled"


# Error mapping
@app.exception_handler(Unauthorized)
async def unauthorized_handler(request: Request, exc: Unauthorized):
    return JSONResponse(status_code=401, content={"detail": str(exc), "login_url": LOGIN_URL})


@app.exception_handler(ConfigError)
async def config_error_handler(request: Request, exc: ConfigError):
    return JSONResponse(status_code=502, content={"detail": str(exc), "retry": True})


@app.exception_handler(UploadFailed)
async def upload_failed_handler(request: Request, exc: UploadFailed):
    return JSONResponse(status_code=502, content={"detail": str(exc), "retry": True})


@app.exception_handler(ValidationFailure)
async def validation_failure_handler(request: Request, exc: ValidationFailure):
    return JSONResponse(status_code=400, content={"detail": exc.message, "fields": exc.fields})


@app.exception_handler(SaveInProgress)
@app.exception_handler(ConfirmationRequired)
@app.exception_handler(EditorNotReady)
async def conflict_handler(request: Request, exc: Exception):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(EntityNotFound)
async def entity_not_found_handler(request: Request, exc: EntityNotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(UnknownField)
async def unknown_field_handler(request: Request, exc: UnknownField):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(PageDisabled)
async def page_disabled_handler(request: Request, exc: PageDisabled):
    return RedirectResponse(url=NOT_FOUND_URL, status_code=303)


# Rate limiting (simple in-memory per-IP, for the login route)
_rate_counters = {}


def rate_limit(request: Request):
    ip = request.client.host if request.client else "unknown"
    now = datetime.now(timezone.utc).timestamp()
    window = int(now // RATE_LIMIT_WINDOW)
    for stale in [k for k in _rate_counters if k[1] != window]:
        del _rate_counters[stale]
    key = (ip, window)
    count = _rate_counters.get(key, 0)
    if count >= RATE_LIMIT_MAX:
        raise HTTPException(status_code=429, detail="Too many requests. Try again later.")
    _rate_counters[key] = count + 1


# JWT utilities

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, JWT_SECRET, algorithm=JWT_ALGORITHM)


def require_admin(request: Request, services: Services = Depends(get_services)):
    """Console tokens are only good while the config store session they were issued for is alive."""
    auth = request.headers.get("authorization")
    if not auth or not auth.startswith("Bearer "):
        raise Unauthorized("Not authenticated")
    token = auth.split(" ", 1)[1]
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt_exc.InvalidTokenError:
        raise Unauthorized("Invalid token")
    fingerprint = services.session.fingerprint()
    if fingerprint is None or payload.get("sid") != fingerprint:
        raise Unauthorized("Session expired. Please login again.")
    return services.session.user


def get_editor(key: str, services: Services, reload: bool = False) -> SectionEditor:
    return services.editors.get(key, reload=reload)


def get_list_editor(key: str, services: Services) -> ListEditor:
    editor = get_editor(key, services)
    if not isinstance(editor, ListEditor):
        raise HTTPException(status_code=404, detail=f"{key} has no list entries")
    return editor


@app.get("/")
def read_root():
    return {"message": "Site content API running"}


@app.get(NOT_FOUND_URL)
def not_found():
    return JSONResponse(status_code=404, content={"detail": "Page not found"})


# Public pages
@app.get("/api/pages/projects/{project_id}")
def get_project(project_id: int, services: Services = Depends(get_services)):
    services.gate.require("projects")
    project = render_project(load_document(services.client, "projects"), project_id)
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


@app.get("/api/pages/{page}")
def get_page(page: PageName, category: Optional[str] = None, services: Services = Depends(get_services)):
    services.gate.require(page)
    doc = load_document(services.client, page)
    if page == "home":
        return render_home(doc)
    if page == "team":
        return render_team(doc)
    if page == "projects":
        return render_projects(doc)
    return render_faq(doc, category)


@app.get("/api/footer")
def get_footer(services: Services = Depends(get_services)):
    return render_footer(load_document(services.client, "footer"))


@app.get("/api/navbar")
def get_navbar(services: Services = Depends(get_services)):
    return render_navbar(services.gate.settings())


# Admin session
@app.post("/admin/login", response_model=Token)
def admin_login(payload: LoginPayload, request: Request, services: Services = Depends(get_services)):
    rate_limit(request)
    try:
        result = services.client.login(payload.username, payload.password)
    except LoginFailed as e:
        raise HTTPException(status_code=401, detail=str(e))
    token = create_access_token({
        "sub": result.username,
        "uid": str(result.user_id),
        "sid": services.session.fingerprint(),
    })
    return Token(access_token=token)


@app.post("/admin/logout")
def admin_logout(admin=Depends(require_admin), services: Services = Depends(get_services)):
    services.client.logout()
    return {"ok": True, "login_url": LOGIN_URL}


@app.get("/admin/me")
def get_me(admin=Depends(require_admin), services: Services = Depends(get_services)):
    return {"user": admin, "preferences": services.preferences.as_dict()}


@app.get("/admin/preferences")
def get_preferences(admin=Depends(require_admin), services: Services = Depends(get_services)):
    return services.preferences.as_dict()


@app.put("/admin/preferences")
def update_preferences(
    payload: PreferencesPayload, admin=Depends(require_admin), services: Services = Depends(get_services)
):
    if payload.language is not None:
        services.preferences.set_language(payload.language)
    if payload.theme is not None:
        services.preferences.set_theme(payload.theme)
    return services.preferences.as_dict()


@app.get("/admin/dashboard")
def get_dashboard(admin=Depends(require_admin), services: Services = Depends(get_services)):
    stored = services.client.fetch_all_documents()
    docs = {}
    for key in ("projects", "team", "faq"):
        value = stored.get(key)
        try:
            docs[key] = DEFAULT_DOCUMENTS[key]() if value is None else DOCUMENT_MODELS[key].model_validate(value)
        except ValidationError as e:
            raise MalformedResponse(f"Stored {key} config is malformed") from e
    return {
        "user": admin,
        "stats": {
            "projects": len(docs["projects"].projects),
            "teamMembers": len(docs["team"].members),
            "faqs": len(docs["faq"].faq_items),
        },
        "configured": sorted(stored),
    }


# Section editors
@app.get("/admin/editors/{key}")
def get_editor_state(
    key: ConfigKey, reload: bool = False, admin=Depends(require_admin), services: Services = Depends(get_services)
):
    return get_editor(key, services, reload=reload).describe()


@app.patch("/admin/editors/{key}/sections")
def update_section(
    key: ConfigKey,
    payload: SectionUpdatePayload,
    admin=Depends(require_admin),
    services: Services = Depends(get_services),
):
    editor = get_editor(key, services)
    editor.update(payload.path, payload.changes)
    return editor.describe()


@app.patch("/admin/editors/home/sections/{section_id}")
def update_content_section(
    section_id: str,
    changes: Dict[str, Any],
    admin=Depends(require_admin),
    services: Services = Depends(get_services),
):
    editor = get_editor("home", services)
    editor.update_content_section(section_id, changes)
    return editor.describe()


@app.post("/admin/editors/{key}/toggle")
def toggle_field(
    key: ConfigKey, payload: TogglePayload, admin=Depends(require_admin), services: Services = Depends(get_services)
):
    editor = get_editor(key, services)
    editor.toggle(payload.path, payload.field)
    return editor.describe()


@app.post("/admin/editors/{key}/save")
def save_editor(key: ConfigKey, admin=Depends(require_admin), services: Services = Depends(get_services)):
    editor = get_editor(key, services)
    editor.save()
    return editor.describe()


@app.post("/admin/editors/{key}/images")
def upload_section_image(
    key: ConfigKey,
    field: str = Form(...),
    path: str = Form(""),
    image: UploadFile = File(...),
    admin=Depends(require_admin),
    services: Services = Depends(get_services),
):
    editor = get_editor(key, services)
    url = editor.upload_image(
        services.uploader, path, field, image.filename or "image", image.file.read(), image.content_type
    )
    return {"url": url, **editor.describe()}


# List entities
@app.post("/admin/editors/{key}/items")
def add_item(key: ConfigKey, admin=Depends(require_admin), services: Services = Depends(get_services)):
    editor = get_list_editor(key, services)
    editor.add_new()
    return editor.describe()


@app.patch("/admin/editors/{key}/items/draft")
def update_item_draft(
    key: ConfigKey,
    changes: Dict[str, Any],
    admin=Depends(require_admin),
    services: Services = Depends(get_services),
):
    editor = get_list_editor(key, services)
    editor.update_entity(changes)
    return editor.describe()


@app.post("/admin/editors/{key}/items/draft/save")
def save_item_draft(key: ConfigKey, admin=Depends(require_admin), services: Services = Depends(get_services)):
    editor = get_list_editor(key, services)
    editor.save_entity()
    return editor.describe()


@app.post("/admin/editors/{key}/items/draft/image")
def upload_item_image(
    key: ConfigKey,
    field: str = Form("image"),
    image: UploadFile = File(...),
    admin=Depends(require_admin),
    services: Services = Depends(get_services),
):
    editor = get_list_editor(key, services)
    url = editor.upload_entity_image(
        services.uploader, field, image.filename or "image", image.file.read(), image.content_type
    )
    return {"url": url, **editor.describe()}


@app.delete("/admin/editors/{key}/items/draft")
def cancel_item_draft(key: ConfigKey, admin=Depends(require_admin), services: Services = Depends(get_services)):
    editor = get_list_editor(key, services)
    editor.cancel()
    return editor.describe()


@app.post("/admin/editors/{key}/items/{item_id}/edit")
def edit_item(
    key: ConfigKey, item_id: int, admin=Depends(require_admin), services: Services = Depends(get_services)
):
    editor = get_list_editor(key, services)
    editor.edit(item_id)
    return editor.describe()


@app.delete("/admin/editors/{key}/items/{item_id}")
def delete_item(
    key: ConfigKey,
    item_id: int,
    confirm: bool = False,
    admin=Depends(require_admin),
    services: Services = Depends(get_services),
):
    editor = get_list_editor(key, services)
    editor.delete(item_id, confirmed=confirm)
    return editor.describe()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=PORT)
