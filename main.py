from fastapi import FastAPI, status, Depends, File, UploadFile
import os
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from config import get_settings
from database import get_session, init_db
from office_bearer_service import OfficeBearerService
from utils.result import Result

settings = get_settings()

# Create logs directory if it doesn't exist
log_dir = settings.log_dir
os.makedirs(log_dir, exist_ok=True)

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Add file handler to write logs to file
log_file_path = os.path.join(log_dir, f"app_{datetime.now().strftime('%Y%m%d')}.log")
file_handler = logging.FileHandler(log_file_path)
file_handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
logging.getLogger().addHandler(file_handler)

# Multipart field the spreadsheet must be sent under
UPLOAD_FIELD_NAME = "excelFile"


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create tables if they don't exist
    init_db()
    logger.info("Office Bearer Import API started")
    yield


# Initialize FastAPI app with metadata
app = FastAPI(
    title="Office Bearer Import API",
    description="API for importing office bearers from Excel files",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def check_upload(filename: Optional[str], size: int) -> Result[bool]:
    """
    Check an uploaded file against the extension and size limits.

    Args:
        filename: Client-supplied file name
        size: Size of the uploaded content in bytes

    Returns:
        Result[bool]: Success, or a 400 failure describing the problem
    """
    extension = os.path.splitext(filename or "")[1].lower()
    if extension not in settings.allowed_extensions:
        return Result.fail(
            "Invalid file",
            message=f"Only Excel files ({', '.join(settings.allowed_extensions)}) are allowed"
        )
    if size > settings.max_upload_bytes:
        limit_mb = settings.max_upload_bytes / (1024 * 1024)
        return Result.fail("Invalid file", message=f"File exceeds the {limit_mb:g}MB size limit")
    return Result.ok(True)


def to_response(result: Result, count: Optional[int] = None) -> JSONResponse:
    content = result.to_dict()
    if result.is_success() and count is not None:
        content["count"] = count
    return JSONResponse(status_code=result.status_code.value, content=jsonable_encoder(content))


# API Endpoints
@app.get("/health", tags=["Health"])
async def health_check():
    return {"status": "OK", "message": "Server is running"}


@app.post(
    "/api/office-bearers/upload",
    tags=["Office Bearers"],
    status_code=status.HTTP_201_CREATED
)
async def upload_office_bearers(
    file: Optional[UploadFile] = File(None, alias=UPLOAD_FIELD_NAME),
    session: Session = Depends(get_session)
):
    """
    Upload an Excel file and create one office bearer per row.

    The whole file is rejected if any row is invalid or any email is
    duplicated, either inside the file or against stored office bearers.

    Returns:
        JSONResponse:
            - 201 with the created office bearers
            - 400 with every validation or duplicate error
            - 500 when storage fails; nothing is stored
    """
    if file is None:
        logger.warning("Upload request without a file")
        return to_response(Result.fail("No file uploaded", message="Please upload an Excel file"))

    content = await file.read()
    log_context = {"upload_filename": file.filename, "file_size": len(content)}
    logger.info("Received office bearer upload", extra=log_context)

    upload_check = check_upload(file.filename, len(content))
    if upload_check.is_failure():
        logger.warning(f"Rejected upload: {upload_check.message}", extra=log_context)
        return to_response(upload_check)

    result = OfficeBearerService(session).process_upload(content)
    result.on_failure(
        lambda failed: logger.warning(f"Upload rejected: {failed}", extra=log_context)
    )

    if result.is_success():
        logger.info(result.message, extra=log_context)
        return to_response(result, count=len(result.data))
    return to_response(result)


@app.get("/api/office-bearers", tags=["Office Bearers"])
async def list_office_bearers(session: Session = Depends(get_session)):
    """
    Get all office bearers, most recently created first.
    """
    try:
        bearers = OfficeBearerService(session).list_all()
    except Exception as e:
        logger.exception("Error fetching office bearers", extra={"error": str(e)})
        return to_response(Result.server_error(message="Failed to fetch office bearers"))

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content=jsonable_encoder({"success": True, "count": len(bearers), "data": bearers})
    )


# Run the application if executed directly
if __name__ == "__main__":
    import uvicorn
    logger.info("Starting Office Bearer Import API in development mode.")
    uvicorn.run("main:app", host=settings.host, port=settings.port, reload=True)
