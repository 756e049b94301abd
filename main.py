from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging
import uvicorn

from config import settings
from database import SessionLocal, init_db
from dates import utcnow
from file_upload import upload_dir
from mailer import Mailer
from notifier import NotificationDispatcher
from routers import auth, events, live, notifications, resources
from storage import Storage
from websocket_manager import manager

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Starting up...")
    init_db()
    upload_dir()
    db = SessionLocal()
    try:
        purged = Storage(db).purge_expired_sessions(utcnow())
        if purged:
            logger.info(f"Removed {purged} expired sessions")
    finally:
        db.close()

    dispatcher = None
    if settings.email_configured:
        dispatcher = NotificationDispatcher(mailer=Mailer(settings))
        dispatcher.start()
    else:
        logger.info("Scheduled notification checker is disabled (email notifications off or not configured).")
    yield
    # Shutdown
    if dispatcher is not None:
        await dispatcher.stop()
    await manager.close_all()
    logger.info("Shutting down...")

app = FastAPI(
    title="Academic Calendar API",
    description="Calendar events, file resources and scheduled email notifications",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

def describe_validation_error(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error.get("loc", ()) if p != "body")
        message = error.get("msg", "Invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "Validation error: " + "; ".join(parts)

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": describe_validation_error(exc)}
    )

@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"}
    )

# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["authentication"])
app.include_router(events.router, prefix="/api/events", tags=["events"])
app.include_router(resources.router, prefix="/api", tags=["resources"])
app.include_router(notifications.router, prefix="/api/notifications", tags=["notifications"])
app.include_router(live.router, prefix="/api", tags=["live"])
app.include_router(resources.uploads_router, tags=["uploads"])

@app.get("/")
async def root():
    return {"message": "Academic Calendar API", "version": "1.0.0"}

@app.get("/health")
async def health_check():
    return {"status": "healthy"}

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
