import logging
import os
import subprocess
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from knockout.database import init_db
from knockout.errors import BracketError
from knockout.routes import bracket, live, matches, participants, rounds, tournament

logger = logging.getLogger(__name__)

app = FastAPI(title="Knockout Bracket API")


# Get build info
def get_build_info():
    """Get git commit hash or build timestamp"""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            cwd=os.path.dirname(os.path.dirname(__file__)),
            capture_output=True,
            text=True,
            timeout=2,
        )
        if result.returncode == 0:
            return result.stdout.strip()
    except (OSError, subprocess.SubprocessError):
        pass

    # Fallback to build timestamp
    return datetime.now().strftime("%Y%m%d-%H%M%S")


BUILD_HASH = get_build_info()

_cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_extra = os.getenv("CORS_ORIGINS", "")
if _extra:
    _cors_origins.extend(o.strip() for o in _extra.split(",") if o.strip())

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BracketError)
async def bracket_error_handler(request: Request, exc: BracketError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Storage failure on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Storage failure"})


# Include routers
app.include_router(rounds.router, prefix="/api", tags=["rounds"])
app.include_router(bracket.router, prefix="/api", tags=["bracket"])
app.include_router(matches.router, prefix="/api", tags=["matches"])
app.include_router(participants.router, prefix="/api", tags=["participants"])
app.include_router(tournament.router, prefix="/api", tags=["tournament"])

# Live match websockets (no /api prefix)
app.include_router(live.router, tags=["live"])


@app.on_event("startup")
def on_startup():
    init_db()  # Use centralized init_db() which imports models and creates tables
    logger.info(f"Knockout Bracket API started (build {BUILD_HASH})")


@app.get("/api/health")
def health_check():
    """Diagnostic endpoint to verify which code is running"""
    return {"app_name": "Knockout Bracket API", "build_hash": BUILD_HASH, "status": "healthy"}
