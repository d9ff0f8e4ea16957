from datetime import datetime, timedelta
from typing import Dict, Any
import jwt
from passlib.context import CryptContext
from hms.core.config import settings
from hms.core.exceptions import InvalidCredentialError, CredentialExpiredError

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash"""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Generate password hash"""
    return pwd_context.hash(password)


def create_access_token(subject: str, data: Dict[str, Any]) -> str:
    """Create JWT access token"""
    to_encode = data.copy()
    expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({
        "exp": expire,
        "iat": datetime.utcnow(),
        "sub": subject,
        "token_type": "access"
    })
    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return encoded_jwt


def decode_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate a JWT access token.

    Expired tokens raise CredentialExpiredError; every other signature or
    format failure raises InvalidCredentialError.
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise CredentialExpiredError()
    except jwt.PyJWTError:
        raise InvalidCredentialError()

    if payload.get("token_type") != "access" or not payload.get("sub"):
        raise InvalidCredentialError()

    return payload
