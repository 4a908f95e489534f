import secrets

from passlib.context import CryptContext

MAX_PASSWORD_LENGTH = 1024

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(password: str) -> str:
    if len(password) > MAX_PASSWORD_LENGTH:
        raise ValueError(f"Password cannot exceed {MAX_PASSWORD_LENGTH} characters")
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    if not hashed_password or len(plain_password) > MAX_PASSWORD_LENGTH:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # unknown hash format, e.g. a legacy placeholder
        return False


def unusable_password_hash() -> str:
    """Hash of a random secret, for accounts that only sign in through Google."""
    return hash_password(secrets.token_urlsafe(32))


def generate_secure_token(n_bytes: int = 32) -> str:
    return secrets.token_hex(n_bytes)


def generate_otp() -> str:
    return f"{secrets.randbelow(1_000_000):06d}"
