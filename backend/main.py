# main.py
# FastAPI app exposing POST /campus-plans - themed date adventures near a campus

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from engine import EngineContext, build_context, generate_campus_plans
from models import CampusPlanRequest, CampusPlanResponse
from settings import settings

# logging
logging.basicConfig(level=logging.INFO)
log = logging.getLogger("campus-plans")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # idea bank, rules and store client are loaded once here, not at import time
    app.state.context = build_context(settings)
    log.info("engine ready: %d curated ideas", len(app.state.context.matcher))
    yield


app = FastAPI(title="Campus Plans API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.FRONTEND_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_context(request: Request) -> EngineContext:
    ctx = getattr(request.app.state, "context", None)
    if ctx is None:
        raise HTTPException(status_code=503, detail="Engine not ready")
    return ctx


# global JSON error handling
# - HTTPException -> { "error": <detail> }
# - any other exception -> { "error": "Server error" }
@app.exception_handler(HTTPException)
async def http_error_handler(request: Request, exc: HTTPException):
    log.warning("HTTP %s: %s", exc.status_code, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    # log stack once. do not leak details to client
    log.exception("Unhandled exception")
    return JSONResponse(status_code=500, content={"error": "Server error"})


@app.post("/campus-plans", response_model=CampusPlanResponse)
async def campus_plans(req: CampusPlanRequest, ctx: EngineContext = Depends(get_context)):
    """
    Walk the relaxation ladder for the requested moods/time-of-day, then
    return one page of themed venues plus the cursor for the next page.
    """
    log.info(
        "campus-plans college=%s lat=%s lng=%s moods=%s tod=%s cursor=%s size=%s",
        req.college, req.originLat, req.originLng, req.moods, req.timeOfDay, req.pageCursor, req.pageSize,
    )
    return await generate_campus_plans(ctx, req)


@app.get("/health")
def health(request: Request):
    ctx = getattr(request.app.state, "context", None)
    return {"ok": True, "ideas": len(ctx.matcher) if ctx else 0}
