"""Password hashing for user accounts."""
from passlib.context import CryptContext

MIN_PASSWORD_LENGTH = 8

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_and_upgrade(password: str, hashed: str) -> tuple[bool, str | None]:
    """Check ``password`` against ``hashed``.

    The second value is a replacement hash when the stored one was made with
    outdated argon2 parameters, otherwise None.
    """
    return pwd_context.verify_and_update(password, hashed)
