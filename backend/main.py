# backend/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from config import settings
from database import SessionLocal, init_db
from services.errors import LedgerCorruption, StockroomError
from services.seed import is_empty, load_demo_data

# Routers
from routes.auth import router as auth_router
from routes.users import router as users_router
from routes.categories import router as categories_router
from routes.suppliers import router as suppliers_router
from routes.storage_areas import router as storage_areas_router
from routes.products import router as products_router
from routes.inventory import router as inventory_router
from routes.movements import router as movements_router
from routes.dashboard import router as dashboard_router
from routes.logs import router as logs_router

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    if settings.SEED_DEMO_DATA:
        db = SessionLocal()
        try:
            if is_empty(db):
                load_demo_data(db)
        finally:
            db.close()
    yield


app = FastAPI(title="Stockroom API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---- error mapping ----

@app.exception_handler(StockroomError)
async def stockroom_error_handler(request: Request, exc: StockroomError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ())[1:]) or None
    return JSONResponse(
        status_code=400,
        content={
            "message": first.get("msg", "Invalid request"),
            "code": "VALIDATION_ERROR",
            "field": field,
        },
    )


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    # Constraint violations the services did not translate themselves
    logger.warning("Request %s %s violated a database constraint: %s", request.method, request.url.path, exc.orig)
    return JSONResponse(
        status_code=409,
        content={"message": "Request conflicts with the current state of the data", "code": "INTEGRITY_CONFLICT"},
    )


@app.exception_handler(LedgerCorruption)
async def ledger_corruption_handler(request: Request, exc: LedgerCorruption):
    logger.critical("Request %s %s hit a corrupt ledger entry: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=500,
        content={"message": "Inventory ledger is inconsistent", "code": "LEDGER_CORRUPTION"},
    )


# ---- routers ----

app.include_router(auth_router)
app.include_router(users_router)
app.include_router(categories_router)
app.include_router(suppliers_router)
app.include_router(storage_areas_router)
app.include_router(products_router)
app.include_router(inventory_router)
app.include_router(movements_router)
app.include_router(dashboard_router)
app.include_router(logs_router)


@app.get("/")
def read_root():
    return {"message": "Stockroom API is running"}
