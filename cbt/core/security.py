import bcrypt

from cbt.core.config import settings


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Checks a plaintext password against a bcrypt hash.
    Passwords are truncated to 72 bytes (bcrypt limit).
    """
    password_bytes = plain_password.encode('utf-8')[:72]
    hashed_bytes = hashed_password.encode('utf-8')

    try:
        return bcrypt.checkpw(password_bytes, hashed_bytes)
    except ValueError:
        # malformed hash stored for the student
        return False


def get_password_hash(password: str, rounds: int = None) -> str:
    """
    Hashes a password with a fresh salt.
    """
    password_bytes = password.encode('utf-8')[:72]
    salt = bcrypt.gensalt(rounds=rounds or settings.BCRYPT_ROUNDS)
    hashed = bcrypt.hashpw(password_bytes, salt)
    return hashed.decode('utf-8')


# Compared against when the exam code is unknown so that both failure
# paths pay for one bcrypt verification.
DUMMY_PASSWORD_HASH = get_password_hash("not-a-real-password")
