import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from orderportal.api import admin
from orderportal.core.config import settings
from orderportal.core.logging import setup_logging, get_logger

setup_logging()
logger = get_logger(__name__)

app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(admin.router)


@app.on_event("startup")
def on_startup():
    from orderportal.db.session import init_db
    logger.info(f"Starting {settings.APP_NAME} {settings.APP_VERSION}")
    init_db()


@app.get("/health")
def health():
    return {"status": "ok", "service": settings.APP_NAME, "version": settings.APP_VERSION}


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
