import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from charity_hub.errors import DataIntegrityError, ValidationFailed, WorkflowError
from charity_hub.routers import api_router
from charity_hub.settings import CORS_ORIGINS, LOG_LEVEL

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Student Charity Hub")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-App-Error-Code"],  # Expose custom headers
)


@app.exception_handler(WorkflowError)
async def workflow_error_handler(request: Request, exc: WorkflowError):
    content = {"detail": exc.message}
    if isinstance(exc, ValidationFailed) and exc.errors:
        content["errors"] = exc.errors
    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers={"X-App-Error-Code": exc.code},
    )


@app.exception_handler(DataIntegrityError)
async def data_integrity_error_handler(request: Request, exc: DataIntegrityError):
    logger.critical("Data integrity fault on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal data integrity error"},
        headers={"X-App-Error-Code": exc.code},
    )


# Include the API router
app.include_router(api_router)
