import os

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from shadebot.config import settings
from shadebot.database import get_db, init_db
from shadebot.logging_config import get_logger, setup_logging
from shadebot.models import Conversation
from shadebot.routers import conversations, message

setup_logging(settings.log_level)
logger = get_logger("main")

app = FastAPI(
    title="Shadebot API",
    description="Dialogue orchestration for the shade-mesh sales chatbot",
    version="0.1.0",
)

cors_env = os.environ.get("CORS_ALLOW_ORIGINS", "*")
cors_origins = [origin.strip() for origin in cors_env.split(",") if origin.strip()]
if not cors_origins:
    cors_origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(message.router)
app.include_router(conversations.router)


def _is_env_enabled(value: str | None, default: bool = True) -> bool:
    if value is None:
        return default
    return value.strip().lower() not in {"0", "false", "no", "off"}


@app.on_event("startup")
def create_tables() -> None:
    if os.environ.get("PYTEST_CURRENT_TEST"):
        return
    if _is_env_enabled(os.environ.get("AUTO_CREATE_TABLES"), default=True):
        init_db()
        logger.info("Database tables ensured")


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/db-check")
def db_check(db: Session = Depends(get_db)):
    conversations_count = db.query(Conversation).count()
    needs_human_count = db.query(Conversation).filter(Conversation.state == "needs_human").count()
    return {
        "status": "ok",
        "conversations": conversations_count,
        "needs_human": needs_human_count,
    }
