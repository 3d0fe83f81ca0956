import asyncio

import structlog
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession

from shared.errors import AuthenticationError, AuthorizationError, ConflictError, NotFoundError
from shared.security.jwt_handler import create_access_token

from .models import User
from .repository import UserRepository
from .schemas import TokenResponse, UserCreate, UserLogin

logger = structlog.get_logger(__name__)

_pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


async def hash_password(password: str) -> str:
    # bcrypt is CPU bound; keep it off the event loop
    return await asyncio.to_thread(_pwd_context.hash, password)


async def verify_password(plain: str, hashed: str) -> bool:
    return await asyncio.to_thread(_pwd_context.verify, plain, hashed)


class AuthService:

    @staticmethod
    def issue_token(user: User) -> str:
        # Role travels in the token so admin checks need no lookup
        return create_access_token(
            data={"sub": str(user.id), "email": user.email, "role": user.role}
        )

    @staticmethod
    async def register(db: AsyncSession, data: UserCreate) -> User:
        email = data.email.lower()
        if await UserRepository.get_by_email(db, email):
            raise ConflictError("Email already registered")

        user = await UserRepository.save(db, User(
            email=email,
            hashed_password=await hash_password(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
        ))
        logger.info("user_registered", user_id=user.id)
        return user

    @staticmethod
    async def login(db: AsyncSession, data: UserLogin) -> TokenResponse:
        user = await UserRepository.get_by_email(db, data.email)
        if user is None or not await verify_password(data.password, user.hashed_password):
            logger.info("login_failed", email=data.email)
            raise AuthenticationError("Incorrect email or password")
        if not user.is_active:
            raise AuthorizationError("Account is disabled")
        return TokenResponse(access_token=AuthService.issue_token(user))

    @staticmethod
    async def get_user_by_id(db: AsyncSession, user_id: int) -> User:
        user = await UserRepository.get_by_id(db, user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user
