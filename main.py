import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse

from config import LOG_LEVEL, PUBLIC_PATHS, TZ_OFFSET_COOKIE_NAME, _set_client_clock
from db import LocalStorage
from routers.auth import router as auth_router
from routers.entries import router as entries_router
from routers.medications import router as medications_router
from routers.trends import router as trends_router
from security import _csrf_header_valid, _ensure_csrf_cookie, _is_same_origin
from session import AuthManager
from storage import KeyedStorage

logger = logging.getLogger(__name__)


def create_app(db_path: Optional[str] = None) -> FastAPI:
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    store = LocalStorage(db_path)
    app = FastAPI(title="Symptalyze")
    app.state.auth = AuthManager(store)
    app.state.storage = KeyedStorage(store)
    logger.info("Local storage at %s (%d users registered)", store.db_path, len(app.state.auth.users))

    @app.middleware("http")
    async def auth_middleware(request: Request, call_next):
        path = request.url.path
        if request.method in {"POST", "PUT", "PATCH", "DELETE"}:
            if not _is_same_origin(request):
                if path.startswith("/api/"):
                    return JSONResponse({"error": "forbidden"}, status_code=403)
                return RedirectResponse(url="/login?error=Forbidden+request", status_code=303)
            if path.startswith("/api/") and not _csrf_header_valid(request):
                return JSONResponse({"error": "forbidden"}, status_code=403)

        _set_client_clock(request.cookies.get(TZ_OFFSET_COOKIE_NAME, ""))

        if path in PUBLIC_PATHS:
            return _ensure_csrf_cookie(request, await call_next(request))

        auth: AuthManager = request.app.state.auth
        if auth.current_user is None:
            if path.startswith("/api/"):
                return JSONResponse({"error": "unauthorized"}, status_code=401)
            if not auth.users:
                return RedirectResponse(url="/signup", status_code=303)
            return RedirectResponse(url="/login", status_code=303)
        return _ensure_csrf_cookie(request, await call_next(request))

    app.include_router(auth_router)
    app.include_router(entries_router)
    app.include_router(medications_router)
    app.include_router(trends_router)
    return app


app = create_app()
