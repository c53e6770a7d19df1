import asyncio
import logging
import os
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from google_auth_oauthlib.flow import Flow
from pydantic import BaseModel

from api.dependencies import get_auth_session
from api.session import sync_store
from storage.google_auth import AuthSession

router = APIRouter()
logger = logging.getLogger(__name__)

# Google Auth Configuration
GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID")
GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET")
GOOGLE_REDIRECT_URI = os.getenv(
    "GOOGLE_REDIRECT_URI", "http://localhost:8000/auth/google/callback"
)
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

SCOPES = [
    "openid",
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/userinfo.email",
]


class TokenIn(BaseModel):
    access_token: str
    email: Optional[str] = None


def _build_flow() -> Flow:
    return Flow.from_client_config(
        {
            "web": {
                "client_id": GOOGLE_CLIENT_ID,
                "client_secret": GOOGLE_CLIENT_SECRET,
                "auth_uri": "https://accounts.google.com/o/oauth2/auth",
                "token_uri": "https://oauth2.googleapis.com/token",
            }
        },
        scopes=SCOPES,
        redirect_uri=GOOGLE_REDIRECT_URI,
        # login and callback build separate flows, so no PKCE verifier survives
        autogenerate_code_verifier=False,
    )


def _redirect(location: str) -> Response:
    return Response(status_code=307, headers={"Location": location})


@router.get("/auth/google/login")
async def google_login():
    """Initiates the OAuth2 flow - redirects to Google."""
    if not GOOGLE_CLIENT_ID or not GOOGLE_CLIENT_SECRET:
        raise HTTPException(status_code=500, detail="Google credentials not configured")

    authorization_url, _state = _build_flow().authorization_url(
        include_granted_scopes="true"
    )
    return _redirect(authorization_url)


@router.get("/auth/google/callback")
async def google_callback(
    code: Optional[str] = None,
    error: Optional[str] = None,
    session: AuthSession = Depends(get_auth_session),
):
    """Handles the OAuth2 callback."""
    if error or not code:
        logger.error(f"OAuth error: {error}")
        return _redirect(f"{FRONTEND_URL}/?error={error or 'missing_code'}")

    try:
        flow = _build_flow()
        await asyncio.to_thread(flow.fetch_token, code=code)

        email = None
        try:
            auth_session = flow.authorized_session()
            user_info = await asyncio.to_thread(
                lambda: auth_session.get("https://www.googleapis.com/userinfo/v2/me").json()
            )
            email = user_info.get("email")
        except Exception as e:
            logger.error(f"Failed to fetch user email: {e}")

        session.set_token(flow.credentials.token, email)
        await sync_store()
        return _redirect(f"{FRONTEND_URL}/?success=true")

    except Exception as e:
        logger.error(f"OAuth callback failed: {e}")
        return _redirect(f"{FRONTEND_URL}/?error={str(e)}")


@router.post("/auth/token")
async def set_token(
    payload: TokenIn, session: AuthSession = Depends(get_auth_session)
) -> dict:
    """Accept an access token obtained by the client (e.g. Google Identity Services)."""
    if not payload.access_token.strip():
        raise HTTPException(status_code=400, detail="access_token must not be blank")
    session.set_token(payload.access_token.strip(), payload.email)
    status = await sync_store()
    return {"authenticated": True, "store_status": status.value if status else None}


@router.get("/auth/status")
async def auth_status(session: AuthSession = Depends(get_auth_session)) -> dict:
    return {"authenticated": session.is_authenticated, "email": session.email}


@router.post("/auth/logout")
async def logout(session: AuthSession = Depends(get_auth_session)) -> dict:
    """Revoke the token and drop the loaded workout data."""
    revoked = await asyncio.to_thread(session.revoke)
    await sync_store()
    return {"status": "logged_out", "revoked": revoked}
