"""
Hooked on Flies Back-Office API

Exposes the admin and public surfaces of the fly-fishing app:
- Fly catalog curation (list, create, edit, bulk import)
- Fly images (upload, stock-photo search and selection, image proxy)
- AI-assisted classification, one fly at a time or in batches
- Public waitlist and data-deletion forms

Design Principles:
- External failures are caught at the handler and returned as a message
  starting with "Error"; nothing is retried automatically
- Validation failures are rejected before any external call is made
- Third-party keys stay on the server
- Auto-generate OpenAPI documentation
"""

import logging
from functools import lru_cache
from typing import List, Optional

from fastapi import BackgroundTasks, Depends, FastAPI, File, Form, Header, HTTPException, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse, Response
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from src.api.schemas import (
    ERROR_RESPONSES,
    BatchRequest,
    BatchStatusResponse,
    BulkImportRequest,
    ClassificationResponse,
    DeletionRequestBody,
    FlyCreateRequest,
    FlyListResponse,
    FlyResponse,
    FlySavedResponse,
    FlyUpdateRequest,
    HealthResponse,
    ImageResultResponse,
    ImageSearchResponse,
    ImageSelectionRequest,
    ImportResponse,
    MessageResponse,
    SessionResponse,
    SuggestionRequest,
    VocabularyResponse,
    WaitlistRequest,
)
from src.common.http import create_session
from src.common.settings import Settings, configure_logging, get_settings
from src.completion import CompletionClient, CompletionError
from src.flies import (
    BatchJobRegistry,
    BatchProgress,
    BatchRunner,
    FlyClassification,
    FlyValidationError,
    build_fly,
    classify_fly,
    enrich_fly,
    patched_fields,
)
from src.flies.vocabulary import vocabulary_summary
from src.hosted import (
    AdminUser,
    AuthClient,
    AuthError,
    DeletionRequest,
    DuplicateFlyError,
    FlyNotFoundError,
    FlyRepository,
    ImageStorage,
    SeasonalPatternRepository,
    SignupRepository,
    StorageError,
    WaitlistEntry,
    get_db_engine,
    parse_import_names,
)
from src.imagesearch import ImageSearchClient, ImageSearchError, fetch_image

API_VERSION = "1.0.0"

logger = logging.getLogger(__name__)

configure_logging()

# Initialize FastAPI app
app = FastAPI(
    title="Hooked on Flies API",
    description="Back-office API for the Hooked on Flies fly-fishing app",
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Dependencies
# ============================================================================

def _not_configured(e: Exception) -> HTTPException:
    logger.error(f"Service not configured: {e}")
    return HTTPException(status_code=503, detail=f"Error: {e}")


@lru_cache(maxsize=1)
def _engine() -> Engine:
    return get_db_engine(get_settings())


def get_db_engine_dep() -> Engine:
    """Get database engine."""
    try:
        return _engine()
    except ValueError as e:
        raise _not_configured(e)


def get_fly_repository(engine: Engine = Depends(get_db_engine_dep)) -> FlyRepository:
    return FlyRepository(engine)


def get_pattern_repository(engine: Engine = Depends(get_db_engine_dep)) -> SeasonalPatternRepository:
    return SeasonalPatternRepository(engine)


def get_signup_repository(engine: Engine = Depends(get_db_engine_dep)) -> SignupRepository:
    return SignupRepository(engine)


def get_completion_client(settings: Settings = Depends(get_settings)) -> CompletionClient:
    try:
        return CompletionClient(settings)
    except ValueError as e:
        raise _not_configured(e)


def get_image_search_client(settings: Settings = Depends(get_settings)) -> ImageSearchClient:
    try:
        return ImageSearchClient(settings)
    except ValueError as e:
        raise _not_configured(e)


def get_image_storage(settings: Settings = Depends(get_settings)) -> ImageStorage:
    try:
        return ImageStorage(settings)
    except ValueError as e:
        raise _not_configured(e)


def get_auth_client(settings: Settings = Depends(get_settings)) -> AuthClient:
    try:
        return AuthClient(settings)
    except ValueError as e:
        raise _not_configured(e)


_proxy_session = create_session()


def get_proxy_session():
    return _proxy_session


_batch_registry = BatchJobRegistry()


def get_batch_registry() -> BatchJobRegistry:
    return _batch_registry


def get_access_token(authorization: Optional[str] = Header(None)) -> str:
    """Bearer token from the Authorization header."""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Error: missing bearer token")
    return authorization.split(" ", 1)[1].strip()


def require_admin(
    token: str = Depends(get_access_token),
    auth: AuthClient = Depends(get_auth_client),
) -> AdminUser:
    """Resolve the admin session or reject the request."""
    try:
        return auth.get_session_user(token)
    except AuthError as e:
        raise HTTPException(status_code=401, detail=f"Error: {e}")


# ============================================================================
# Health & Metadata Endpoints
# ============================================================================

@app.get("/health", response_model=HealthResponse, tags=["System"])
def health_check(engine: Engine = Depends(get_db_engine_dep)):
    """
    Check API health status.

    Returns:
        Health status including database connectivity
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))

        return HealthResponse(
            status="healthy",
            version=API_VERSION,
            database="connected",
            message="All systems operational"
        )
    except Exception as e:
        return HealthResponse(
            status="unhealthy",
            version=API_VERSION,
            database="disconnected",
            message=f"Database error: {str(e)}"
        )


@app.get("/metadata/vocabulary", response_model=VocabularyResponse, tags=["System"])
async def get_vocabulary_metadata():
    """Controlled vocabularies for seasons, water types, depths, categories and weather."""
    return VocabularyResponse(**vocabulary_summary())


# ============================================================================
# Image Proxy
# ============================================================================

@app.get("/image-proxy", tags=["Images"], summary="Fetch a remote image with CORS headers")
def image_proxy(
    url: Optional[str] = Query(None, description="Image URL to fetch"),
    session=Depends(get_proxy_session),
):
    """
    Fetch an image server-side and return its bytes unchanged.

    No caching, auth or rate limiting. The upstream content type is passed
    through (image/jpeg when missing).
    """
    if not url:
        return PlainTextResponse("Missing image URL", status_code=400)

    try:
        image = fetch_image(url, session=session)
    except ImageSearchError as e:
        return PlainTextResponse(f"Failed to fetch image: {e}", status_code=500)

    return Response(
        content=image.content,
        media_type=image.content_type,
        headers={"Access-Control-Allow-Origin": "*"},
    )


# ============================================================================
# Public Forms
# ============================================================================

@app.post("/waitlist", response_model=MessageResponse, status_code=201, tags=["Public"])
def join_waitlist(
    request: WaitlistRequest,
    repository: SignupRepository = Depends(get_signup_repository),
):
    """Add an email (and optional name) to the app waitlist."""
    try:
        repository.add_waitlist_entry(WaitlistEntry(name=request.name, email=request.email))
    except SQLAlchemyError as e:
        logger.error(f"Waitlist insert failed: {e}")
        raise HTTPException(status_code=502, detail=f"Error: {e}")

    return MessageResponse(message="Successfully joined the waitlist!")


@app.post("/data-deletion-requests", response_model=MessageResponse, status_code=201, tags=["Public"])
def request_data_deletion(
    request: DeletionRequestBody,
    repository: SignupRepository = Depends(get_signup_repository),
):
    """Record a pending request to delete a user's data."""
    try:
        repository.add_deletion_request(DeletionRequest(email=request.email))
    except SQLAlchemyError as e:
        logger.error(f"Deletion request insert failed: {e}")
        raise HTTPException(status_code=502, detail=f"Error: {e}")

    return MessageResponse(
        message=(
            "Your data deletion request has been submitted. We will process it "
            "within 30 days and send you a confirmation email."
        )
    )


# ============================================================================
# Admin Session
# ============================================================================

@app.get("/admin/session", response_model=SessionResponse, responses=ERROR_RESPONSES, tags=["Admin"])
def get_session(user: AdminUser = Depends(require_admin)):
    """Current admin session."""
    return SessionResponse(user_id=user.id, email=user.email, role=user.role)


@app.post("/admin/logout", response_model=MessageResponse, responses=ERROR_RESPONSES, tags=["Admin"])
def logout(
    token: str = Depends(get_access_token),
    auth: AuthClient = Depends(get_auth_client),
):
    """Sign the current session out."""
    try:
        auth.sign_out(token)
    except AuthError as e:
        raise HTTPException(status_code=502, detail=f"Error signing out: {e}")
    return MessageResponse(message="Signed out")


# ============================================================================
# Fly Catalog
# ============================================================================

@app.get("/admin/flies", response_model=FlyListResponse, responses=ERROR_RESPONSES, tags=["Flies"])
def list_flies(
    show_all: bool = Query(False, description="Include flies that already have details"),
    repository: FlyRepository = Depends(get_fly_repository),
    _: AdminUser = Depends(require_admin),
):
    """List flies by name; by default only those still needing details."""
    try:
        flies = repository.list_flies(incomplete_only=not show_all)
    except SQLAlchemyError as e:
        raise HTTPException(status_code=502, detail=f"Error loading flies: {e}")

    return FlyListResponse(
        flies=[FlyResponse.from_fly(fly) for fly in flies],
        count=len(flies),
        show_all=show_all,
    )


@app.get("/admin/flies/{fly_id}", response_model=FlyResponse, responses=ERROR_RESPONSES, tags=["Flies"])
def get_fly(
    fly_id: str,
    repository: FlyRepository = Depends(get_fly_repository),
    _: AdminUser = Depends(require_admin),
):
    try:
        return FlyResponse.from_fly(repository.get(fly_id))
    except FlyNotFoundError as e:
        raise HTTPException(status_code=404, detail=f"Error: {e}")
    except SQLAlchemyError as e:
        raise HTTPException(status_code=502, detail=f"Error loading fly: {e}")


@app.post(
    "/admin/flies",
    response_model=FlySavedResponse,
    status_code=201,
    responses=ERROR_RESPONSES,
    tags=["Flies"],
)
def create_fly(
    request: FlyCreateRequest,
    repository: FlyRepository = Depends(get_fly_repository),
    patterns: SeasonalPatternRepository = Depends(get_pattern_repository),
    _: AdminUser = Depends(require_admin),
):
    """
    Create a fly from the admin form.

    The record is validated (temperature order, months, depth) before any
    write. Legacy seasonal patterns, when given, are stored against the
    fly's name in a second write.
    """
    try:
        fly = build_fly(**request.fly_fields())
    except FlyValidationError as e:
        raise HTTPException(status_code=422, detail=f"Error: {e}")

    try:
        created = repository.create(fly)
        patterns.add_patterns(created.name, request.patterns)
    except DuplicateFlyError as e:
        raise HTTPException(status_code=409, detail=f"Error: {e}")
    except SQLAlchemyError as e:
        logger.error(f"Creating fly '{fly.name}' failed: {e}")
        raise HTTPException(status_code=502, detail=f"Error: {e}")

    return FlySavedResponse(message="Fly data saved successfully!", fly=FlyResponse.from_fly(created))


@app.patch("/admin/flies/{fly_id}", response_model=FlySavedResponse, responses=ERROR_RESPONSES, tags=["Flies"])
def update_fly(
    fly_id: str,
    request: FlyUpdateRequest,
    repository: FlyRepository = Depends(get_fly_repository),
    _: AdminUser = Depends(require_admin),
):
    """Save edited details. Each field group is validated against the full record."""
    try:
        current = repository.get(fly_id)
        fields = patched_fields(current, request.to_patches())
        repository.update(fly_id, fields)
        saved = repository.get(fly_id)
    except FlyNotFoundError as e:
        raise HTTPException(status_code=404, detail=f"Error: {e}")
    except FlyValidationError as e:
        raise HTTPException(status_code=422, detail=f"Error saving details: {e}")
    except SQLAlchemyError as e:
        raise HTTPException(status_code=502, detail=f"Error saving details: {e}")

    return FlySavedResponse(message="Details saved successfully!", fly=FlyResponse.from_fly(saved))


@app.post("/admin/flies/import", response_model=ImportResponse, responses=ERROR_RESPONSES, tags=["Flies"])
def import_flies(
    request: BulkImportRequest,
    repository: FlyRepository = Depends(get_fly_repository),
    _: AdminUser = Depends(require_admin),
):
    """Create name-only flies from a newline-separated list, skipping existing names."""
    names = parse_import_names(request.names_text)
    if not names:
        raise HTTPException(status_code=422, detail="Error: no fly names given")

    try:
        result = repository.import_names(names)
    except SQLAlchemyError as e:
        raise HTTPException(status_code=502, detail=f"Error: {e}")

    return ImportResponse(message=result.message, added=result.added, skipped=result.skipped)


# ============================================================================
# Fly Images
# ============================================================================

@app.post("/admin/flies/upload", response_model=FlySavedResponse, responses=ERROR_RESPONSES, tags=["Images"])
def upload_fly_image(
    name: str = Form(..., min_length=1),
    file: UploadFile = File(...),
    repository: FlyRepository = Depends(get_fly_repository),
    storage: ImageStorage = Depends(get_image_storage),
    _: AdminUser = Depends(require_admin),
):
    """
    Store an image for a fly by name.

    Updates the image of the fly with this name, or creates a new fly with
    just the name and image.
    """
    name = name.strip()
    if not name:
        raise HTTPException(status_code=422, detail="Error: fly name is required")

    filename = file.filename or ""
    extension = filename.rsplit('.', 1)[-1] if '.' in filename else "jpg"

    try:
        existed = repository.get_by_name(name) is not None
        public_url = storage.upload_image(
            file.file.read(),
            extension,
            file.content_type or "image/jpeg",
        )
        fly = repository.set_image_by_name(name, public_url)
    except StorageError as e:
        raise HTTPException(status_code=502, detail=f"Error uploading image: {e}")
    except SQLAlchemyError as e:
        raise HTTPException(status_code=502, detail=f"Error: {e}")

    message = "Fly image updated successfully!" if existed else "New fly added successfully!"
    return FlySavedResponse(message=message, fly=FlyResponse.from_fly(fly))


@app.get("/admin/image-search", response_model=ImageSearchResponse, responses=ERROR_RESPONSES, tags=["Images"])
def search_fly_images(
    q: str = Query(..., min_length=1, description="Fly name or part of it"),
    repository: FlyRepository = Depends(get_fly_repository),
    search: ImageSearchClient = Depends(get_image_search_client),
    _: AdminUser = Depends(require_admin),
):
    """
    Find a fly by name and search stock photos for it.

    The first fly (by name) whose name contains the query is used.
    """
    try:
        matches = repository.search_by_name(q)
    except SQLAlchemyError as e:
        raise HTTPException(status_code=502, detail=f"Error: {e}")

    if not matches:
        return ImageSearchResponse(message="No flies found with that name")

    fly = matches[0]
    try:
        results = search.search_fly(fly.name)
    except ImageSearchError as e:
        raise HTTPException(status_code=502, detail=f"Error: {e}")

    return ImageSearchResponse(
        fly_id=fly.id,
        fly_name=fly.name,
        results=[
            ImageResultResponse(link=r.link, title=r.title, thumbnail_link=r.thumbnail_link)
            for r in results
        ],
        message="" if results else "No images found",
    )


@app.post("/admin/flies/{fly_id}/image", response_model=FlySavedResponse, responses=ERROR_RESPONSES, tags=["Images"])
def select_fly_image(
    fly_id: str,
    request: ImageSelectionRequest,
    repository: FlyRepository = Depends(get_fly_repository),
    search: ImageSearchClient = Depends(get_image_search_client),
    storage: ImageStorage = Depends(get_image_storage),
    _: AdminUser = Depends(require_admin),
):
    """Download a selected search result into storage and attach it to the fly."""
    try:
        repository.get(fly_id)
        image = search.fetch(request.image_url)
        public_url = storage.upload_image(image.content, image.extension, image.content_type)
        repository.update(fly_id, {'image_url': public_url})
        fly = repository.get(fly_id)
    except FlyNotFoundError as e:
        raise HTTPException(status_code=404, detail=f"Error: {e}")
    except (ImageSearchError, StorageError) as e:
        raise HTTPException(status_code=502, detail=f"Error: {e}")
    except SQLAlchemyError as e:
        raise HTTPException(status_code=502, detail=f"Error: {e}")

    return FlySavedResponse(message="Image updated successfully!", fly=FlyResponse.from_fly(fly))


# ============================================================================
# AI Classification
# ============================================================================

def _classification_response(
    fly_id: Optional[str],
    classification: FlyClassification,
    saved: bool,
    message: str
) -> ClassificationResponse:
    return ClassificationResponse(
        fly_id=fly_id,
        saved=saved,
        message=message,
        **classification.model_dump(),
    )


@app.post(
    "/admin/flies/{fly_id}/suggestions",
    response_model=ClassificationResponse,
    responses=ERROR_RESPONSES,
    tags=["Classification"],
)
def suggest_fly_details(
    fly_id: str,
    repository: FlyRepository = Depends(get_fly_repository),
    completer: CompletionClient = Depends(get_completion_client),
    _: AdminUser = Depends(require_admin),
):
    """Ask the completion service for details. Nothing is saved."""
    try:
        fly = repository.get(fly_id)
        classification = classify_fly(fly.name, completer)
    except FlyNotFoundError as e:
        raise HTTPException(status_code=404, detail=f"Error: {e}")
    except CompletionError as e:
        raise HTTPException(status_code=502, detail=f"Error getting AI details: {e}")
    except SQLAlchemyError as e:
        raise HTTPException(status_code=502, detail=f"Error: {e}")

    return _classification_response(fly_id, classification, saved=False, message="AI analysis complete!")


@app.post(
    "/admin/suggestions",
    response_model=ClassificationResponse,
    responses=ERROR_RESPONSES,
    tags=["Classification"],
)
def suggest_details_by_name(
    request: SuggestionRequest,
    completer: CompletionClient = Depends(get_completion_client),
    _: AdminUser = Depends(require_admin),
):
    """
    Ask the completion service about a fly by name, before it is saved.

    Used by the create form; the result fills the form and nothing is written.
    """
    name = request.name.strip()
    if not name:
        raise HTTPException(status_code=422, detail="Error: fly name is required")

    try:
        classification = classify_fly(name, completer)
    except CompletionError as e:
        raise HTTPException(status_code=502, detail=f"Error getting AI details: {e}")

    return _classification_response(None, classification, saved=False, message="AI analysis complete!")


@app.post(
    "/admin/flies/{fly_id}/classify",
    response_model=ClassificationResponse,
    responses=ERROR_RESPONSES,
    tags=["Classification"],
)
def classify_and_save_fly(
    fly_id: str,
    repository: FlyRepository = Depends(get_fly_repository),
    completer: CompletionClient = Depends(get_completion_client),
    _: AdminUser = Depends(require_admin),
):
    """Classify one fly and save the result (reprocess)."""
    try:
        fly = repository.get(fly_id)
        classification = enrich_fly(fly, completer, repository)
    except FlyNotFoundError as e:
        raise HTTPException(status_code=404, detail=f"Error: {e}")
    except CompletionError as e:
        raise HTTPException(status_code=502, detail=f"Error getting AI details: {e}")
    except FlyValidationError as e:
        raise HTTPException(status_code=422, detail=f"Error saving details: {e}")
    except SQLAlchemyError as e:
        raise HTTPException(status_code=502, detail=f"Error saving details: {e}")

    return _classification_response(fly_id, classification, saved=True, message="Details saved successfully!")


def _status(progress: BatchProgress) -> BatchStatusResponse:
    return BatchStatusResponse(**progress.model_dump(), succeeded=progress.succeeded)


def run_batch_job(
    flies: List,
    progress: BatchProgress,
    completer: CompletionClient,
    repository: FlyRepository,
    registry: BatchJobRegistry,
    settings: Settings,
) -> None:
    """Background task: classify and save each fly, publishing progress per group."""
    runner = BatchRunner(
        process=lambda fly: enrich_fly(fly, completer, repository),
        batch_size=settings.batch_size,
        delay_seconds=settings.batch_delay_seconds,
        on_progress=registry.save,
    )
    try:
        runner.run(flies, progress)
    except Exception as e:
        logger.error(f"Batch {progress.job_id} aborted: {e}")
        progress.finished = True
        progress.message = f"Batch processing error: {e}"
        registry.save(progress)


@app.post(
    "/admin/batches",
    response_model=BatchStatusResponse,
    status_code=202,
    responses=ERROR_RESPONSES,
    tags=["Classification"],
)
def start_batch(
    request: BatchRequest,
    background_tasks: BackgroundTasks,
    repository: FlyRepository = Depends(get_fly_repository),
    completer: CompletionClient = Depends(get_completion_client),
    registry: BatchJobRegistry = Depends(get_batch_registry),
    settings: Settings = Depends(get_settings),
    _: AdminUser = Depends(require_admin),
):
    """
    Classify and save the selected flies in the background.

    Flies run in groups (3 by default) with a pause between groups. Poll
    GET /admin/batches/{job_id} for progress. There is no cancel.
    """
    try:
        flies = repository.get_many(request.fly_ids)
    except SQLAlchemyError as e:
        raise HTTPException(status_code=502, detail=f"Batch processing error: {e}")

    if not flies:
        raise HTTPException(status_code=404, detail="Error: none of the selected flies exist")

    progress = registry.create(total=len(flies))
    background_tasks.add_task(run_batch_job, flies, progress, completer, repository, registry, settings)

    logger.info(f"Queued batch {progress.job_id} with {len(flies)} flies")
    return _status(progress)


@app.get(
    "/admin/batches/{job_id}",
    response_model=BatchStatusResponse,
    responses=ERROR_RESPONSES,
    tags=["Classification"],
)
def get_batch_status(
    job_id: str,
    registry: BatchJobRegistry = Depends(get_batch_registry),
    _: AdminUser = Depends(require_admin),
):
    """Progress of a batch: processed / total, failures and their messages."""
    progress = registry.get(job_id)
    if progress is None:
        raise HTTPException(status_code=404, detail=f"Error: no batch {job_id}")
    return _status(progress)


# ============================================================================
# Run Application
# ============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
