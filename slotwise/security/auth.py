from jose import JWTError, jwt
from fastapi import HTTPException, Depends, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session
from slotwise import config
from slotwise.database import get_db
from slotwise.models.user_model import User
from slotwise.schemas.user_schema import Role
from slotwise.services.user_crud import user_crud

# Tokens are minted by the identity provider; this service only verifies them
security = HTTPBearer(auto_error=False)


def decode_token(token: str) -> dict:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(
            token,
            config.SECRET_KEY,
            algorithms=[config.ALGORITHM],
            audience=config.TOKEN_AUDIENCE,
            options={"verify_aud": config.TOKEN_AUDIENCE is not None},
        )
    except JWTError:
        raise credentials_exception

    if not payload.get("sub"):
        raise credentials_exception
    return payload


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    payload = decode_token(credentials.credentials)
    user = user_crud.get_or_provision(
        db,
        str(payload["sub"]),
        role=payload.get("role"),
        name=payload.get("name"),
        email=payload.get("email"),
    )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive.",
        )
    return user


def get_current_provider_user(current_user: User = Depends(get_current_user)):
    """Get current user and ensure they can offer services"""
    if current_user.role not in (Role.provider.value, Role.admin.value):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only providers can perform this action"
        )
    return current_user


def get_current_admin_user(current_user: User = Depends(get_current_user)):
    """Get current user and ensure they are admin"""
    if current_user.role != Role.admin.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user
