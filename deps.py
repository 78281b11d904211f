"""Request dependencies.

The session manager and the per-user storage adapter live on ``app.state``
(built once in ``main.create_app``); handlers take them through Depends().
"""

from fastapi import Depends, HTTPException, Request

from models import User
from session import AuthManager
from storage import KeyedStorage


def get_auth(request: Request) -> AuthManager:
    return request.app.state.auth


def get_storage(request: Request) -> KeyedStorage:
    return request.app.state.storage


def get_current_user(auth: AuthManager = Depends(get_auth)) -> User:
    """Current session user; 401 when nobody is logged in.

    The auth middleware already turns anonymous requests away, so this only
    fires if the session ended between the middleware check and the handler.
    """
    user = auth.current_user
    if user is None:
        raise HTTPException(status_code=401, detail="unauthorized")
    return user
