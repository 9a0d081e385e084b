from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
from pathlib import Path

from habit_tracker.database import engine, Base
from habit_tracker import models  # Import all models to register them with Base
from habit_tracker.api import habits, progress
from habit_tracker.services.scheduler_service import start_scheduler, stop_scheduler
from habit_tracker.exceptions import (
    HabitTrackerException, ConfigurationError, ValidationError, StoreError,
    HabitNotFoundException, EventNotFoundException, RelapseConfirmationRequired
)
from habit_tracker.constants import (
    DEFAULT_LOG_DIRECTORY_DEV, LOG_DIR, LOG_FILE, CORS_ALLOWED_ORIGINS
)

# Create log directory if it doesn't exist (for development)
try:
    Path(LOG_DIR).mkdir(parents=True, exist_ok=True)
    log_path = Path(LOG_DIR) / LOG_FILE
except PermissionError:
    # Fallback to local directory if no permissions for /var/log
    Path(DEFAULT_LOG_DIRECTORY_DEV).mkdir(parents=True, exist_ok=True)
    log_path = Path(DEFAULT_LOG_DIRECTORY_DEV) / LOG_FILE

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(log_path),
        logging.StreamHandler()  # Also log to console
    ]
)

logger = logging.getLogger("habit_tracker")

# Create database tables
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Habit Tracker API",
    description="Habit progress evaluation, day statuses, streaks and milestones",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(habits.router)
app.include_router(progress.router)

_STATUS_CODES = (
    (HabitNotFoundException, status.HTTP_404_NOT_FOUND),
    (EventNotFoundException, status.HTTP_404_NOT_FOUND),
    (ConfigurationError, status.HTTP_400_BAD_REQUEST),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (RelapseConfirmationRequired, status.HTTP_409_CONFLICT),
    (StoreError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


@app.exception_handler(HabitTrackerException)
async def habit_tracker_exception_handler(request: Request, exc: HabitTrackerException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for exc_type, code in _STATUS_CODES:
        if isinstance(exc, exc_type):
            status_code = code
            break

    content = {"detail": str(exc)}
    if isinstance(exc, RelapseConfirmationRequired):
        content["relapse_count"] = exc.relapse_count
    if isinstance(exc, (ConfigurationError, ValidationError)):
        content["field"] = exc.field

    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected: {exc}")
    return JSONResponse(status_code=status_code, content=content)


# Startup event
@app.on_event("startup")
async def startup_event():
    logger.info(f"Habit Tracker API started. Logging to: {log_path}")
    start_scheduler()


# Shutdown event
@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down Habit Tracker API")
    stop_scheduler()


# Health check (no auth required)
@app.get("/")
async def root():
    return {"message": "Habit Tracker API", "status": "active"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("habit_tracker.main:app", host="0.0.0.0", port=8000, reload=False)
