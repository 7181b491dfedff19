from models import db, AuditEntry
from tree_utils import now_timestamp

UPDATE_CONTENT = 'CONTENT'
UPDATE_TITLE = 'TITLE'
CREATE_NOTE = 'CREATE'
DELETE_NOTE = 'DELETE'
CHANGE_PARENT = 'PARENT'
CHANGE_POSITION = 'POSITION'
CHANGE_EXPANDED = 'EXPANDED'
PROTECTED = 'PROTECTED'

CATEGORIES = {
    UPDATE_CONTENT,
    UPDATE_TITLE,
    CREATE_NOTE,
    DELETE_NOTE,
    CHANGE_PARENT,
    CHANGE_POSITION,
    CHANGE_EXPANDED,
    PROTECTED,
}

DEFAULT_LIMIT = 50
MAX_LIMIT = 500


def add_audit(category, browser_id=None, note_id=None, change_from=None, change_to=None, comment=None):
    """Record a structural change in the current transaction (caller commits)."""
    if category not in CATEGORIES:
        raise ValueError(f"Unknown audit category '{category}'")
    entry = AuditEntry(
        date_modified=now_timestamp(),
        category=category,
        browser_id=browser_id,
        note_id=note_id,
        change_from=change_from,
        change_to=change_to,
        comment=comment
    )
    db.session.add(entry)
    return entry


def recent_entries(note_id=None, limit=DEFAULT_LIMIT):
    query = AuditEntry.query
    if note_id:
        query = query.filter(AuditEntry.note_id == note_id)
    return query.order_by(AuditEntry.date_modified.desc(), AuditEntry.id.desc()).limit(limit).all()
