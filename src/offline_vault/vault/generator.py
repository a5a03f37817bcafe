# Vault - Password Generator
#
# Random passwords for new entries, drawn with the secrets module.

import secrets

PASSWORD_CHARSET = (
    "abcdefghijklmnopqrstuvwxyz"
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    "0123456789"
    "!@#$%^&*"
)
DEFAULT_PASSWORD_LENGTH = 16
MAX_PASSWORD_LENGTH = 128


def generate_password(length: int = DEFAULT_PASSWORD_LENGTH) -> str:
    """Generate a random password of `length` characters.

    Raises:
        ValueError: length outside 1..MAX_PASSWORD_LENGTH
    """
    if length < 1 or length > MAX_PASSWORD_LENGTH:
        raise ValueError(
            f"Password length must be between 1 and {MAX_PASSWORD_LENGTH}"
        )
    return "".join(secrets.choice(PASSWORD_CHARSET) for _ in range(length))
