import logging
import secrets
from typing import Collection

from conceptrepo.config import get_settings
from conceptrepo.errors import AllocationExhausted

ID_MIN = 100_000_000
ID_MAX = 999_999_999


def allocate_id(existing_keys: Collection[str], max_attempts: int | None = None) -> int:
    """
    Draw a random 9 digit identifier that is not yet used as a key.

    :param existing_keys: the keys already in use (e.g. the byKey entries of a directory index)
    :param max_attempts: number of draws before giving up, defaults to the id_allocation_attempts setting
    """
    attempts = get_settings().id_allocation_attempts if max_attempts is None else max_attempts
    for _ in range(attempts):
        candidate = ID_MIN + secrets.randbelow(ID_MAX - ID_MIN + 1)
        if str(candidate) not in existing_keys:
            return candidate
        logging.debug(f"Identifier {candidate} already in use, drawing again")
    raise AllocationExhausted(f"Could not find a free identifier in {attempts} attempts")
