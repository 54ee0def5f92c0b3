# Casebook billing backend entrypoint.

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from casebook.app.api import auth
from casebook.app.api import billings
from casebook.app.api import payments
from casebook.app.core.errors import BillingError
from casebook.app.core.logging import configure_logging
from casebook.app.core.settings import get_settings
from casebook.app.db.base import Base
from casebook.app.db.session import engine

settings = get_settings()
configure_logging()

app = FastAPI(title=settings.app_name, version=settings.api_version)

origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(billings.router)
app.include_router(payments.router)


@app.exception_handler(BillingError)
async def billing_error_handler(request: Request, exc: BillingError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.get("/")
def read_root():
    return {"app": "Casebook backend", "status": "ok"}


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.on_event("startup")
def create_tables():
    Base.metadata.create_all(bind=engine)
