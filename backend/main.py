from fastapi import FastAPI
from dotenv import load_dotenv

load_dotenv()
from fastapi.middleware.cors import CORSMiddleware
from database import Base, engine
from datetime import datetime
import os
import logging
from fastapi.openapi.utils import get_openapi

import models  # noqa: F401  registers every table on Base.metadata
import routers.parties as parties
import routers.materials as materials
import routers.reference_data as reference_data
import routers.orders as orders
import routers.stock_transactions as stock_transactions
import routers.stock_reports as stock_reports
import routers.stock_ledger_admin as stock_ledger_admin
import routers.backup as backup
import routers.app_config as app_config


LOG_DIR = os.getenv("LOG_DIR", "logs")
os.makedirs(LOG_DIR, exist_ok=True)

# One log file per process start
current_time_str = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
LOG_FILE = os.path.join(LOG_DIR, f"app_{current_time_str}.log")
LOG_LEVEL = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)

logging.basicConfig(
    level=LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    filename=LOG_FILE,
    filemode='a'
)

# Mirror the file log on the console
console_handler = logging.StreamHandler()
console_handler.setLevel(LOG_LEVEL)
console_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
logging.getLogger().addHandler(console_handler)

logger = logging.getLogger(__name__)
logger.info("Application starting up...")


# Create database tables
Base.metadata.create_all(bind=engine)


app = FastAPI()


allowed_origins_str = os.getenv(
    "CORS_ALLOWED_ORIGINS",
    "http://localhost:5173,http://127.0.0.1:5173"
)

allowed_origins = [origin.strip() for origin in allowed_origins_str.split(',')]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    openapi_schema = get_openapi(
        title="Stock Ledger API",
        version="1.0.0",
        description="Orders, raw material stock ledger and stock reports for garment manufacturing",
        routes=app.routes,
    )
    openapi_schema.setdefault("components", {})["securitySchemes"] = {
        "BearerAuth": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
        }
    }
    # Apply security globally to all endpoints
    openapi_schema["security"] = [{"BearerAuth": []}]
    app.openapi_schema = openapi_schema
    return app.openapi_schema

app.openapi = custom_openapi


app.include_router(parties.router)
app.include_router(materials.router)
app.include_router(reference_data.router)
app.include_router(orders.router)
app.include_router(stock_transactions.router)
app.include_router(stock_reports.router)
app.include_router(stock_ledger_admin.router)
app.include_router(backup.router)
app.include_router(app_config.router)


@app.on_event("startup")
def start_scheduler():
    if os.getenv("ENABLE_STOCK_RECONCILE_JOB", "").lower() in ("1", "true", "yes"):
        from scheduler import scheduler
        scheduler.start()
        logger.info("Stock reconcile job scheduled")


@app.on_event("shutdown")
def stop_scheduler():
    from scheduler import scheduler
    if scheduler.running:
        scheduler.shutdown(wait=False)


@app.get("/")
async def test_route():
    return {"message": "Welcome to the Stock Ledger API!"}
