import logging

from jose import JWTError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from app.cuadre.core.context import context_from_state
from app.cuadre.core.security import decode_token

logger = logging.getLogger(__name__)


class ActorContextMiddleware(BaseHTTPMiddleware):
    """Exposes the bearer token's actor on ``request.state`` for logging and audit attribution.

    Authorization itself is enforced by the route dependencies.
    """

    async def dispatch(self, request: Request, call_next):
        request.state.user_id = None
        request.state.role = None
        request.state.branch_id = None

        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.lower().startswith("bearer "):
            token = auth_header.split(" ", 1)[1]
            try:
                payload = decode_token(token)
                request.state.user_id = payload.get("sub")
                request.state.role = payload.get("role")
                request.state.branch_id = payload.get("branch_id")
            except JWTError:
                logger.debug("Ignoring undecodable bearer token")

        request.state.context = context_from_state(request)

        return await call_next(request)
