# src/winnerstays/utils/misc_utils.py
import uuid


def new_id(prefix: str) -> str:
    """Generates a random identifier such as ``evt_3f2a...``."""
    return f"{prefix}_{uuid.uuid4().hex}"
