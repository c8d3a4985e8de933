import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager

from thatsgoodtoo.core.config import settings
from thatsgoodtoo.core.exceptions import InternalError, ServiceError
from thatsgoodtoo.db.session import create_db_and_tables

# Import models to ensure they are registered with SQLModel metadata
from thatsgoodtoo.models import User, Listing, Coupon, CouponUsage, CouponShare, VendorApplication, RateLimitCounter

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db_and_tables()
    yield

app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    lifespan=lifespan,
    description="Coupon management API for That's Good Too vendors and shoppers"
)

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    body = exc.to_response() if isinstance(exc, ServiceError) else {"error": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if not errors:
        return JSONResponse(status_code=400, content={"error": "Invalid request"})
    first = errors[0]
    loc = [part for part in first.get("loc", ()) if part != "body"]
    body = {"error": first.get("msg", "Invalid request")}
    if loc:
        body["field"] = str(loc[-1])
    return JSONResponse(status_code=400, content=body)

@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": InternalError.default_detail})

@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": InternalError.default_detail})

@app.get("/")
def read_root():
    return {"message": f"Welcome to {settings.PROJECT_NAME}. Visit /docs for Swagger UI."}

from thatsgoodtoo.routers import auth, coupons, shares, jobs, vendors, admin, listings, contact

app.include_router(auth.router, prefix="/api/v1/auth", tags=["auth"])
app.include_router(coupons.router, prefix="/api/v1/coupons", tags=["coupons"])
app.include_router(shares.router, prefix="/api/v1/shares", tags=["shares"])
app.include_router(jobs.router, prefix="/api/v1/jobs", tags=["jobs"])
app.include_router(vendors.router, prefix="/api/v1/vendors", tags=["vendors"])
app.include_router(admin.router, prefix="/api/v1/admin", tags=["admin"])
app.include_router(listings.router, prefix="/api/v1/listings", tags=["listings"])
app.include_router(contact.router, prefix="/api/v1/contact", tags=["contact"])

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
