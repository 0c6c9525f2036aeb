import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

# Import models so they're registered with SQLAlchemy Base before create_all
from . import __version__, models  # noqa: F401
from .config import ALLOWED_ORIGINS, ENVIRONMENT
from .database import Base, engine
from .domain.shifts import router as shifts_router
from .exceptions import CareCRMException

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


def error_response(status_code: int, code: str, message: str, details=None) -> JSONResponse:
    error = {"code": code, "message": message}
    if details:
        error["details"] = details
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Application starting up ({ENVIRONMENT})...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        # Ignore "already exists" errors from race conditions between workers
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")
            raise

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="Care CRM API", version=__version__, lifespan=lifespan)


@app.exception_handler(CareCRMException)
async def care_crm_exception_handler(request: Request, exc: CareCRMException):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} - {exc.error_code}: {exc.detail}")
    return error_response(exc.status_code, exc.error_code, exc.detail, exc.details)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Convert validation errors on the Authorization header to 401 and every
    other request validation error to a 400 VALIDATION_ERROR
    """
    for error in exc.errors():
        if error.get("loc") and "authorization" in str(error.get("loc")).lower():
            logger.warning(
                f"Authentication failed for {request.url.path}: Missing or invalid Authorization header"
            )
            return error_response(401, "UNAUTHORIZED", "Authorization header required")

    logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    details = [
        {"loc": list(e.get("loc", [])), "msg": e.get("msg"), "type": e.get("type")}
        for e in exc.errors()
    ]
    return error_response(400, "VALIDATION_ERROR", "Invalid request parameters", details)


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.exception(f"{request.method} {request.url.path} - Database error: {exc}")
    return error_response(500, "DATABASE_ERROR", "Database error")


# CORS Configuration
logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

# Routes
api_router = APIRouter(prefix=API_PREFIX)
api_router.include_router(shifts_router)
app.include_router(api_router)


@app.get("/")
def root():
    return {"message": "Care CRM API is running"}


@app.get("/health")
def health():
    return {"status": "ok", "message": "Care CRM API is running", "version": __version__}
