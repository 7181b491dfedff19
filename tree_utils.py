import secrets
import string
from contextlib import contextmanager
from datetime import datetime

import pytz

ROOT_NOTE_ID = "root"
ID_LENGTH = 12
_ID_ALPHABET = string.ascii_letters + string.digits


def new_entity_id(length: int = ID_LENGTH) -> str:
    """Random alphanumeric id used for notes, tree rows and the instance source id."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


def now_timestamp() -> datetime:
    """Current UTC time as a naive datetime (all stored timestamps are naive UTC)."""
    return datetime.now(pytz.UTC).replace(tzinfo=None)


@contextmanager
def in_transaction(session):
    """
    Run a block of writes as one unit.

    Commits when the block finishes; rolls back and re-raises on any error so
    position shifts, row writes and log entries never land partially.
    """
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
