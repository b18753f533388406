"""Entry point for the FastAPI-powered library import service."""

from __future__ import annotations

import json
import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .config import settings
from .database import Database
from .errors import (
    CompletionTimeError,
    ConfigurationError,
    CrossReferenceError,
    IdentityResolutionError,
    ImportTimeoutError,
    LibraryFetchError,
    LibraryImportError,
)
from .models import ImportRequest, LibraryEntry, PreferencesPayload
from .services.igdb import IGDBClient
from .services.importer import LibraryImportService
from .services.library_store import LibraryStore
from .services.protondb import ProtonDBClient
from .services.rawg import RawgClient
from .services.steam import SteamClient

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app: FastAPI

ERROR_STATUS: dict[type[LibraryImportError], int] = {
    IdentityResolutionError: 400,
    LibraryFetchError: 400,
    CrossReferenceError: 502,
    CompletionTimeError: 502,
    ConfigurationError: 500,
    ImportTimeoutError: 504,
}


@asynccontextmanager
async def lifespan(_: FastAPI):
    exit_stack = AsyncExitStack()
    steam_http = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=str(settings.steam_api_url),
            timeout=httpx.Timeout(20.0, connect=10.0),
        )
    )
    rawg_http = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=str(settings.rawg_api_url),
            timeout=httpx.Timeout(15.0, connect=5.0),
        )
    )
    igdb_http = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=str(settings.igdb_api_url),
            timeout=httpx.Timeout(30.0, connect=10.0),
        )
    )
    protondb_http = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=str(settings.protondb_api_url),
            timeout=httpx.Timeout(10.0, connect=5.0),
            follow_redirects=True,
        )
    )
    database = Database(settings.database_url)
    await database.create_all()

    missing = settings.missing_import_credentials()
    if missing:
        logger.warning("Imports disabled until configured: %s", ", ".join(missing))

    import_service = LibraryImportService(
        settings,
        SteamClient(settings, steam_http),
        RawgClient(settings, rawg_http),
        IGDBClient(settings, igdb_http),
        ProtonDBClient(settings, protondb_http),
        LibraryStore(database.session_factory),
    )

    app.state.import_service = import_service
    app.state.database = database

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await database.dispose()
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Steam library import and enrichment for the backlog tracker",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_import_service(app: FastAPI) -> LibraryImportService:
    service = getattr(app.state, "import_service", None)
    if not isinstance(service, LibraryImportService):
        raise RuntimeError("Import service not initialised")
    return service


def register_routes(fastapi_app: FastAPI) -> None:
    async def _read_payload(request: Request) -> dict[str, Any]:
        try:
            payload = await request.json()
        except json.JSONDecodeError:
            payload = {}
        if not isinstance(payload, dict):
            raise HTTPException(status_code=400, detail="Invalid payload")
        return payload

    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.post("/api/users/{user_id}/import-steam")
    async def import_steam_library(request: Request, user_id: str) -> JSONResponse:
        service = get_import_service(fastapi_app)
        payload = await _read_payload(request)
        try:
            import_request = ImportRequest.model_validate(payload)
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=exc.errors()) from exc

        try:
            result = await service.import_library(user_id, import_request)
        except LibraryImportError as exc:
            return _error_response(exc)
        except Exception:
            logger.exception("Steam import failed for user %s", user_id)
            return JSONResponse(
                {
                    "error": "InternalError",
                    "message": "An unknown error occurred during import.",
                },
                status_code=500,
            )
        return JSONResponse(result.to_payload())

    @fastapi_app.post("/api/users/{user_id}/deck-compat/refresh")
    async def refresh_deck_compat(user_id: str) -> JSONResponse:
        service = get_import_service(fastapi_app)
        result = await service.refresh_compatibility(user_id)
        if result.checked == 0:
            message = "No PC games found to update."
        else:
            message = "Steam Deck compatibility status updated for all PC games."
        return JSONResponse({"message": message, **result.model_dump()})

    @fastapi_app.get("/api/users/{user_id}/games")
    async def list_games(user_id: str) -> JSONResponse:
        service = get_import_service(fastapi_app)
        records = await service.store.list_records(user_id)
        games = [
            LibraryEntry.model_validate(record).model_dump(mode="json", by_alias=True)
            for record in records
        ]
        return JSONResponse({"games": games})

    @fastapi_app.get("/api/users/{user_id}/preferences")
    async def get_preferences(user_id: str) -> JSONResponse:
        service = get_import_service(fastapi_app)
        preferences = await service.store.load_preferences(user_id)
        return JSONResponse(preferences.model_dump(by_alias=True))

    @fastapi_app.put("/api/users/{user_id}/preferences")
    async def put_preferences(request: Request, user_id: str) -> JSONResponse:
        service = get_import_service(fastapi_app)
        payload = await _read_payload(request)
        try:
            preferences = PreferencesPayload.model_validate(payload)
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=exc.errors()) from exc
        saved = await service.store.save_preferences(user_id, preferences)
        return JSONResponse(saved.model_dump(by_alias=True))


def _error_response(exc: LibraryImportError) -> JSONResponse:
    status = ERROR_STATUS.get(type(exc), 500)
    return JSONResponse({"error": exc.kind, "message": str(exc)}, status_code=status)


app = create_app()


if __name__ == "__main__":  # pragma: no cover - manual execution
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )
