import random
import re
from typing import List

from .db import NUM_POSSIBLE_CODES

CODE_RE = re.compile(r"^\d{6}$")


def create_6digit_code() -> str:
    """
    Return a random 6-digit numeric code as a zero-padded string.

    Uniqueness is not guaranteed; see generate_dummy_codes().
    """
    return f"{random.randrange(NUM_POSSIBLE_CODES):06d}"


def is_valid_code(value) -> bool:
    return isinstance(value, str) and CODE_RE.match(value) is not None


def generate_dummy_codes(count: int) -> List[str]:
    """
    Return `count` distinct random 6-digit codes without touching the
    code pool, for previews and tests. Handing out pool codes marks them
    used, these can be thrown away.
    """
    if count < 0:
        raise ValueError("count must not be negative")
    if count > NUM_POSSIBLE_CODES:
        raise ValueError(f"at most {NUM_POSSIBLE_CODES} distinct codes exist")

    seen = set()
    codes = []
    while len(codes) < count:
        code = create_6digit_code()
        if code in seen:
            continue
        seen.add(code)
        codes.append(code)
    return codes
