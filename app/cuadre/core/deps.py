from fastapi import Depends
from jose import JWTError
from pydantic import ValidationError

from app.cuadre.core.error_catalog import AppError, ErrorCatalog
from app.cuadre.core.security import TokenData, decode_token, oauth2_scheme


def get_current_token_data(token: str = Depends(oauth2_scheme)) -> TokenData:
    try:
        payload = decode_token(token)
        return TokenData(**payload)
    except (JWTError, ValidationError, TypeError) as exc:
        raise AppError(ErrorCatalog.INVALID_TOKEN) from exc


def require_roles(*roles: str):
    allowed = {role.upper() for role in roles}

    def dependency(token_data: TokenData = Depends(get_current_token_data)) -> TokenData:
        if (token_data.role or "").upper() not in allowed:
            raise AppError(ErrorCatalog.PERMISSION_DENIED, details={"required_roles": sorted(allowed)})
        return token_data

    return dependency


__all__ = ["get_current_token_data", "require_roles"]
