from __future__ import annotations

import random
import string
import uuid
from collections.abc import Container


LOBBY_CODE_LENGTH = 6


def create_entity_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4()}"


def create_correlation_id() -> str:
    return str(uuid.uuid4())


def generate_lobby_code(existing_codes: Container[str], length: int = LOBBY_CODE_LENGTH) -> str:
    """Generate a short shareable code that is not in use by a live lobby."""
    while True:
        code = "".join(random.choices(string.ascii_uppercase + string.digits, k=length))
        if code not in existing_codes:
            return code
