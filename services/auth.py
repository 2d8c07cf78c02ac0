from datetime import datetime, timedelta
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from models.user import User, UserRole
from schemas.user import TokenData
from core.config import settings
from core.permissions import AdminRole
import logging
import uuid

logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

# JWT settings
ALGORITHM = "HS256"
TOKEN_ISSUER = "admin-backoffice"

def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password: str) -> str:
    """Hash a password."""
    return pwd_context.hash(password)

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed JWT access token.

    ``data`` should carry ``sub`` (user id), ``email`` and ``admin_role``;
    the admin role claim is what every permission check reads.
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({
        "exp": expire,
        "iat": datetime.utcnow(),
        "iss": TOKEN_ISSUER,
        "type": "access"
    })

    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)
    logger.info(f"Access token created for user: {data.get('sub')}")
    return encoded_jwt

def verify_token(token: str) -> Optional[TokenData]:
    """Decode a JWT access token. Returns None for any invalid or expired token."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM], issuer=TOKEN_ISSUER)
    except JWTError as e:
        logger.warning(f"JWT verification failed: {str(e)}")
        return None

    user_id = payload.get("sub")
    if user_id is None or payload.get("type") != "access":
        logger.warning("Token missing required claims")
        return None

    return TokenData(
        user_id=str(user_id),
        email=payload.get("email"),
        admin_role=payload.get("admin_role")
    )

def issue_admin_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    return create_access_token(
        data={"sub": str(user.id), "email": user.email, "admin_role": user.admin_role},
        expires_delta=expires_delta
    )

def get_user_by_email(db: Session, email: str) -> Optional[User]:
    email = email.lower().strip()
    return db.query(User).filter(User.email == email).first()

def authenticate_admin(db: Session, email: str, password: str) -> Optional[User]:
    """Return the admin account matching the credentials, or None."""
    email = email.lower().strip()

    user = get_user_by_email(db, email)
    if not user:
        logger.warning(f"Authentication attempt with non-existent email: {email}")
        return None

    if not user.is_active:
        logger.warning(f"Authentication attempt with inactive user: {email}")
        return None

    if user.role != UserRole.ADMIN:
        logger.warning(f"Admin authentication attempt by non-admin user: {email}")
        return None

    if not verify_password(password, user.password_hash):
        logger.warning(f"Authentication attempt with invalid password for user: {email}")
        return None

    logger.info(f"Successful authentication for admin: {email}")
    return user

def create_admin_user(db: Session, email: str, password: str, first_name: str, last_name: str,
                      admin_role: AdminRole) -> User:
    """Create an ADMIN account holding ``admin_role``."""
    try:
        existing_user = get_user_by_email(db, email)
        if existing_user:
            logger.warning(f"Attempt to create user with existing email: {email}")
            raise ValueError("User with this email already exists")

        db_user = User(
            id=str(uuid.uuid4()),
            email=email.lower().strip(),
            password_hash=get_password_hash(password),
            first_name=first_name,
            last_name=last_name,
            role=UserRole.ADMIN,
            admin_role=AdminRole(admin_role).value,
            is_active=True,
            created_at=datetime.utcnow(),
            updated_at=datetime.utcnow()
        )

        db.add(db_user)
        db.commit()
        db.refresh(db_user)

        logger.info(f"Admin user created: {email} with role {db_user.admin_role}")
        return db_user

    except IntegrityError as e:
        db.rollback()
        logger.error(f"Database integrity error creating user {email}: {str(e)}")
        raise ValueError("User with this email already exists")
    except Exception as e:
        db.rollback()
        logger.error(f"Unexpected error creating user {email}: {str(e)}")
        raise

def update_last_login(db: Session, user: User):
    """Update user's last login timestamp."""
    try:
        user.last_login = datetime.utcnow()
        user.updated_at = datetime.utcnow()
        db.commit()
        db.refresh(user)
    except Exception as e:
        db.rollback()
        logger.error(f"Error updating last login for user {user.email}: {str(e)}")
