# authentik/app/main.py
from __future__ import annotations
import logging
import sys
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from authentik.app.config import get_settings
from authentik.app.deps import close_http_client
from authentik.app.routers.extract import router as extract_router
from authentik.app.routers.suggestions import router as suggestions_router

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

app = FastAPI(title="Authentik Extraction API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().FRONTEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(extract_router)
app.include_router(suggestions_router)


@app.on_event("shutdown")
async def shutdown() -> None:
    await close_http_client()


@app.get("/health")
def health():
    return {"ok": True}
