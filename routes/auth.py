# routes/auth.py
from fastapi import HTTPException, Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
import os
from dotenv import load_dotenv
import logging

logger = logging.getLogger(__name__)

load_dotenv()
JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret-change-me")
JWT_ALGORITHM = "HS256"

STUDENT_ROLE = "student"
STAFF_ROLES = ["tutor", "admin"]
VALID_ROLES = {STUDENT_ROLE, *STAFF_ROLES}

# Tokens are issued by the platform's login service; this service only verifies them.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def create_token(user_id: str, role: str) -> str:
    return jwt.encode({"id": user_id, "role": role}, JWT_SECRET, algorithm=JWT_ALGORITHM)


async def get_current_user(token: str = Depends(oauth2_scheme)):
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        logger.error(f"JWTError: {str(e)}")
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    user_id = payload.get("id")
    role = payload.get("role")
    if not user_id or not role:
        logger.error("Invalid token: Missing user_id or role")
        raise HTTPException(status_code=401, detail="Invalid token")
    if role not in VALID_ROLES:
        logger.warning(f"Rejected token for {user_id} with role {role}")
        raise HTTPException(status_code=403, detail="User does not have an assessment role")
    return {"id": user_id, "role": role}


def require_roles(*roles: str):
    async def checker(current_user: dict = Depends(get_current_user)):
        if current_user["role"] not in roles:
            raise HTTPException(status_code=403, detail="Not authorized")
        return current_user
    return checker


require_student = require_roles(STUDENT_ROLE)
require_staff = require_roles(*STAFF_ROLES)
