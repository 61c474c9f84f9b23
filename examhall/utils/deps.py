from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
from pydantic import ValidationError
from sqlalchemy.orm import Session
from examhall.core.constants import RoleEnum
from examhall.core.database import get_db
from examhall.core.security import decode_access_token
from examhall.crud.user import user as user_crud
from examhall.schemas.user import TokenPayload, User, UserContext

http_bearer = HTTPBearer()

def get_current_user_with_context(
    db: Session = Depends(get_db),
    credentials: HTTPAuthorizationCredentials = Depends(http_bearer)
) -> UserContext:
    try:
        payload = decode_access_token(credentials.credentials)
        token_data = TokenPayload(**payload)
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )
    except ValidationError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    user = user_crud.get(db, id=token_data.user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive"
        )

    return UserContext(user=User.model_validate(user), role=user.role)

def require_role(role: RoleEnum):
    """Dependency that lets through only callers holding `role`."""
    def _verify_role(context: UserContext = Depends(get_current_user_with_context)) -> UserContext:
        if context.role != role.value:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to perform this action."
            )
        return context
    return _verify_role

get_current_student = require_role(RoleEnum.STUDENT)
get_current_admin = require_role(RoleEnum.ADMIN)
