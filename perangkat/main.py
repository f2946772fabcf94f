import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from perangkat.config import Config
from perangkat.database import init_db
from perangkat.gemini_client import AssistantError
from perangkat.models import curriculum, evaluasi, jurnal, kalender, sekolah, user # Import all models here
from perangkat.routes import auth, evaluasi as evaluasi_routes, jurnal as jurnal_routes, kalender as kalender_routes, kurikulum, live, sekolah as sekolah_routes
from perangkat.services.scheduler_service import ScheduleNotConfigured
from perangkat.store import DocumentNotFound, InvalidField, StoreWriteError, UnknownCollection

logging.basicConfig(
    level=Config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: Init DB
    await init_db()
    yield

app = FastAPI(title="Perangkat Pembelajaran Backend", lifespan=lifespan)

origins = [
    Config.FRONTEND_URL,
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

def _with_cors(request: Request, response: JSONResponse) -> JSONResponse:
    # Handler error berjalan di luar CORSMiddleware
    origin = request.headers.get("origin")
    if origin in origins:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Credentials"] = "true"
    return response

@app.exception_handler(ScheduleNotConfigured)
async def schedule_not_configured_handler(request: Request, exc: ScheduleNotConfigured):
    return _with_cors(request, JSONResponse(status_code=400, content={"detail": str(exc)}))

@app.exception_handler(DocumentNotFound)
async def not_found_handler(request: Request, exc: DocumentNotFound):
    return _with_cors(request, JSONResponse(status_code=404, content={"detail": str(exc)}))

@app.exception_handler(UnknownCollection)
async def unknown_collection_handler(request: Request, exc: UnknownCollection):
    return _with_cors(request, JSONResponse(status_code=404, content={"detail": f"Koleksi tidak dikenal: {exc.args[0]}"}))

@app.exception_handler(InvalidField)
async def invalid_field_handler(request: Request, exc: InvalidField):
    return _with_cors(request, JSONResponse(status_code=422, content={"detail": str(exc)}))

@app.exception_handler(StoreWriteError)
async def store_write_handler(request: Request, exc: StoreWriteError):
    return _with_cors(request, JSONResponse(status_code=500, content={"detail": str(exc)}))

@app.exception_handler(AssistantError)
async def assistant_error_handler(request: Request, exc: AssistantError):
    logger.warning("AI drafting failed: %s", exc)
    return _with_cors(request, JSONResponse(status_code=502, content={"detail": str(exc)}))

# Global Exception Handler to ensure CORS headers are present even on 500 errors
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Global Exception: {exc}", exc_info=True)
    response = JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error", "message": str(exc)},
    )
    return _with_cors(request, response)

# 1. Proxy & Session Middleware
app.add_middleware(ProxyHeadersMiddleware, trusted_hosts="*")

app.add_middleware(
    SessionMiddleware,
    secret_key=Config.SECRET_KEY,
    max_age=3600*24 * 7, # 7 Days
    https_only=Config.ENV == "PRODUCTION",
    same_site="lax",
    domain=Config.SESSION_COOKIE_DOMAIN
)

# 2. CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True, # Allow Cookies
    allow_methods=["*"],
    allow_headers=["*"],
)

# 3. Routes
app.include_router(auth.router, prefix="/auth", tags=["Auth"])
app.include_router(kalender_routes.router) # Prefix defined in router
app.include_router(kurikulum.router)
app.include_router(jurnal_routes.router)
app.include_router(evaluasi_routes.router)
app.include_router(sekolah_routes.router)
app.include_router(live.router, tags=["Live"])

@app.get("/")
def root():
    return {"message": "Perangkat Pembelajaran Backend Online"}
