import secrets
import string

_CODE_ALPHABET = string.ascii_uppercase + string.digits


def random_code(length: int = 6) -> str:
    """Random uppercase alphanumeric code, used for verification codes and tracking suffixes."""
    return "".join(secrets.choice(_CODE_ALPHABET) for _ in range(length))


def status_key(status_value: str) -> str:
    """'In Transit' -> 'inTransit', 'in-progress' -> 'inProgress', 'in_review' -> 'inReview'."""
    parts = status_value.replace("-", " ").replace("_", " ").split()
    if not parts:
        return status_value
    return parts[0].lower() + "".join(part.capitalize() for part in parts[1:])
