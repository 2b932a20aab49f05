from __future__ import annotations

import random
import string


def make_session_id(prefix: str = "S", n: int = 6) -> str:
    return f"{prefix}{''.join(random.choices(string.digits, k=n))}"
