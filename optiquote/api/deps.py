"""
API Dependencies.
Common dependencies for authentication, database sessions and services.
"""

import logging
from typing import Annotated
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from optiquote.core.config import settings
from optiquote.core.database import get_db
from optiquote.core.security import TokenData, decode_token
from optiquote.models.user import User, UserRole
from optiquote.services.catalog import CatalogService
from optiquote.services.notification import NotificationService
from optiquote.services.order_conversion import OrderConversionService
from optiquote.services.policy import QuotationPolicy
from optiquote.services.quotation_store import QuotationStore
from optiquote.services.quotation_workflow import QuotationWorkflow


# Logger
logger = logging.getLogger(__name__)

# Bearer token scheme
security = HTTPBearer(auto_error=False)

# Domain for addresses of accounts whose token carries no email claim
PLACEHOLDER_EMAIL_DOMAIN = "users.optiquote.invalid"


def _invalid_token() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired authentication token",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _get_user(db: AsyncSession, user_id: int) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def _provision_user(db: AsyncSession, token_data: TokenData) -> User:
    """
    Create the local account for a subject seen for the first time.

    The identity provider owns accounts; the local row only anchors
    ownership and notifications. Email and name come from the token
    claims when present.
    """
    try:
        role = UserRole(token_data.role or UserRole.CUSTOMER.value)
    except ValueError:
        logger.warning(f"Unknown role claim '{token_data.role}' for user {token_data.user_id}")
        raise _invalid_token()

    email = (token_data.email or f"user-{token_data.user_id}@{PLACEHOLDER_EMAIL_DOMAIN}").strip().lower()
    user = User(
        id=token_data.user_id,
        email=email,
        full_name=token_data.full_name or email.split("@")[0],
        role=role,
        is_active=True,
    )

    try:
        async with db.begin_nested():
            db.add(user)
    except IntegrityError:
        # Concurrent first request for the same subject, or the email is taken
        existing = await _get_user(db, token_data.user_id)
        if existing is None:
            logger.warning(f"Could not provision user {token_data.user_id}: email {email} in use")
            raise _invalid_token()
        return existing

    logger.info(f"Provisioned user {user.id} ({role.value}) from identity token")
    return user


async def _resolve_user(
    credentials: HTTPAuthorizationCredentials | None,
    db: AsyncSession,
) -> User | None:
    if not credentials:
        return None

    token_data = decode_token(credentials.credentials)
    if token_data is None or token_data.user_id is None:
        logger.warning("Invalid or expired token")
        raise _invalid_token()

    if token_data.token_type != "access":
        logger.warning("Invalid token type")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = await _get_user(db, token_data.user_id)
    if user is None:
        user = await _provision_user(db, token_data)

    if not user.is_active:
        logger.warning(f"Inactive account: {user.email}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is disabled",
        )

    logger.debug(f"Authenticated user: {user.email}")
    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Get the current user from the bearer JWT.

    Raises:
        HTTPException: 401 if the token is missing or invalid
    """
    user = await _resolve_user(credentials, db)
    if user is None:
        logger.warning("Access attempt without token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User | None:
    """Current user when a token is sent, None for guests."""
    return await _resolve_user(credentials, db)


async def get_staff_user(
    current_user: User = Depends(get_current_user),
) -> User:
    """
    Get the current user, requiring the staff or admin role.

    Raises:
        HTTPException: 403 for customers
    """
    if not current_user.is_staff:
        logger.warning(f"Staff access refused for {current_user.email}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Staff access required",
        )
    return current_user


def get_quotation_policy() -> QuotationPolicy:
    return QuotationPolicy.from_settings(settings)


def get_quotation_workflow(
    db: AsyncSession = Depends(get_db),
    policy: QuotationPolicy = Depends(get_quotation_policy),
) -> QuotationWorkflow:
    """Build the workflow with request-scoped collaborators."""
    store = QuotationStore(db, optimistic_locking=policy.optimistic_locking)
    catalog = CatalogService(db)
    return QuotationWorkflow(
        store=store,
        catalog=catalog,
        notifier=NotificationService(db),
        conversion=OrderConversionService(db, store, catalog, policy),
        policy=policy,
    )


# Type aliases for cleaner route signatures
CurrentUser = Annotated[User, Depends(get_current_user)]
OptionalUser = Annotated[User | None, Depends(get_optional_user)]
StaffUser = Annotated[User, Depends(get_staff_user)]
DbSession = Annotated[AsyncSession, Depends(get_db)]
Workflow = Annotated[QuotationWorkflow, Depends(get_quotation_workflow)]
