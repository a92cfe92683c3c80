"""
Authentication Utility - Supabase JWT verification.

Sign-up and login happen against Supabase Auth; this service only
verifies the bearer token Supabase issued and maps its subject to a
marketplace profile.

Provides:
- JWT verification against the project's JWT secret
- FastAPI dependencies for protected routes
"""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from internmatch.core.config import get_settings
from internmatch.core.errors import Forbidden, NotFound, Unauthenticated
from internmatch.services.documents import CompanyProfileDocuments, StudentProfileDocuments

settings = get_settings()

# Bearer token extractor; missing tokens are reported by us, not FastAPI
bearer_scheme = HTTPBearer(auto_error=False)


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify a Supabase access token."""
    try:
        return jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.supabase_jwt_audience,
        )
    except JWTError:
        return None


def user_from_token(token: str) -> dict:
    payload = decode_token(token)
    if not payload or not payload.get("sub"):
        raise Unauthenticated("Invalid or expired token")

    # app_metadata is server-controlled; user_metadata is set by the user
    app_metadata = payload.get("app_metadata") or {}
    user_metadata = payload.get("user_metadata") or {}
    return {
        "user_id": payload["sub"],
        "email": payload.get("email"),
        "role": app_metadata.get("role") or user_metadata.get("role"),
        "is_admin": app_metadata.get("role") == "admin",
    }


def _attach_profiles(user: dict) -> dict:
    student = StudentProfileDocuments().get_by_user(user["user_id"])
    if student:
        user["student_id"] = student["_id"]
    company = CompanyProfileDocuments().get_by_user(user["user_id"])
    if company:
        user["company_id"] = company["_id"]
    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> dict:
    """
    FastAPI dependency - Get current authenticated user.

    Usage:
        @app.get("/protected")
        async def route(user: dict = Depends(get_current_user)):
            return user
    """
    if credentials is None:
        raise Unauthenticated("No authentication token")
    return user_from_token(credentials.credentials)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> Optional[dict]:
    """Dependency - like get_current_user, but anonymous callers get None."""
    if credentials is None:
        return None
    return _attach_profiles(user_from_token(credentials.credentials))


async def get_current_student(user: dict = Depends(get_current_user)) -> dict:
    """Dependency - Require a student profile and attach student_id."""
    student = StudentProfileDocuments().get_by_user(user["user_id"])
    if not student:
        raise NotFound("Student profile not found. Create profile first.")
    user["student_id"] = student["_id"]
    return user


async def get_current_company(user: dict = Depends(get_current_user)) -> dict:
    """Dependency - Require a company profile and attach company_id."""
    company = CompanyProfileDocuments().get_by_user(user["user_id"])
    if not company:
        raise NotFound("Company profile not found. Create profile first.")
    user["company_id"] = company["_id"]
    return user


async def get_profile_user(user: dict = Depends(get_current_user)) -> dict:
    """Dependency - attach whichever profiles the caller has; at least one is required."""
    user = _attach_profiles(user)
    if "student_id" not in user and "company_id" not in user:
        raise NotFound("Profile not found. Create profile first.")
    return user


async def require_admin(user: dict = Depends(get_current_user)) -> dict:
    """Dependency - Require the admin role in app_metadata."""
    if not user["is_admin"]:
        raise Forbidden("Admins only")
    return user
