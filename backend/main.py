import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Cookie, FastAPI
from fastapi.middleware.cors import CORSMiddleware
import psycopg2
from dotenv import load_dotenv
from jose import JWTError, jwt
from starlette.middleware.sessions import SessionMiddleware

from backend import app_context
from backend.access_config import load_access_config


load_dotenv()

CONFIG = load_access_config()

DB_CFG = CONFIG.db_settings

JWT_SECRET_KEY = CONFIG.jwt_secret_key
JWT_ALGORITHM = CONFIG.jwt_algorithm
JWT_EXP_MINUTES = CONFIG.jwt_exp_minutes
SESSION_COOKIE_NAME = CONFIG.session_cookie_name

logging.basicConfig(level=getattr(logging, CONFIG.log_level, logging.INFO))
logger = logging.getLogger("auth")


def get_conn():
    return psycopg2.connect(**DB_CFG)


def create_access_token(*, subject: str, expires_delta: Optional[timedelta] = None) -> str:
    payload = {"sub": subject}
    if expires_delta is None:
        expires_delta = timedelta(minutes=JWT_EXP_MINUTES)
    expire = datetime.now(timezone.utc) + expires_delta
    payload["exp"] = expire
    return jwt.encode(payload, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


async def get_user_by_id(uid: int):
    return await get_access_control().user_store.get_user(uid)


async def resolve_user_from_session_token(session_token: str):
    try:
        payload = jwt.decode(session_token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
        subject = payload.get("sub")
        if subject is None:
            return None
        user_id = int(subject)
    except (JWTError, ValueError):
        return None

    return await get_user_by_id(user_id)


async def get_optional_current_user(
    session_token: Optional[str] = Cookie(None, alias=SESSION_COOKIE_NAME),
):
    if not session_token:
        return None

    try:
        user = await resolve_user_from_session_token(session_token)
    except Exception:
        logger.exception("Unexpected error while resolving optional session token")
        return None
    return user


app_context.configure(
    get_conn=get_conn,
    get_optional_current_user=get_optional_current_user,
)

from backend.app.feature_gates import FeatureGateError, UsageRecordingMiddleware, gate_exception_handler
from backend.app.routes.admin_grants import router as admin_grants_router
from backend.app.routes.subscriptions import router as subscriptions_router
from backend.app.services.subscriptions import get_access_control

app = FastAPI(title="Access Control API")

app.add_middleware(UsageRecordingMiddleware)

app.add_middleware(
    SessionMiddleware,
    secret_key=CONFIG.session_secret_key,
    session_cookie=f"{SESSION_COOKIE_NAME}_flash",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(CONFIG.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(
    FeatureGateError,
    gate_exception_handler(sign_in_url=CONFIG.sign_in_url, upgrade_url=CONFIG.upgrade_url),
)

app.include_router(subscriptions_router)
app.include_router(admin_grants_router)


@app.get("/api/healthz")
def healthz():
    return {"ok": True}
