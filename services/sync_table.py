"""Change-tracking log.

Each changed entity gets one row in ``sync``. Registering the same entity
again replaces its row, so the entity resurfaces with a larger id for
consumers that poll with "everything after id N".
"""
from flask import current_app

from models import db, SyncEntry
from tree_utils import now_timestamp

ENTITY_NOTES = 'notes'
ENTITY_NOTES_TREE = 'notes_tree'
ENTITY_NOTES_REORDERING = 'notes_reordering'

ENTITY_NAMES = (ENTITY_NOTES, ENTITY_NOTES_TREE, ENTITY_NOTES_REORDERING)


def add_entity_sync(entity_name, entity_id, source_id=None):
    if entity_name not in ENTITY_NAMES:
        raise ValueError(f"Unknown sync entity '{entity_name}'")
    source_id = source_id or current_app.config['SOURCE_ID']

    SyncEntry.query.filter_by(entity_name=entity_name, entity_id=entity_id).delete()
    entry = SyncEntry(
        entity_name=entity_name,
        entity_id=entity_id,
        source_id=source_id,
        sync_date=now_timestamp()
    )
    db.session.add(entry)
    db.session.flush()
    return entry


def add_note_sync(note_id, source_id=None):
    return add_entity_sync(ENTITY_NOTES, note_id, source_id)


def add_note_tree_sync(note_tree_id, source_id=None):
    return add_entity_sync(ENTITY_NOTES_TREE, note_tree_id, source_id)


def add_note_reordering_sync(parent_note_id, source_id=None):
    return add_entity_sync(ENTITY_NOTES_REORDERING, parent_note_id, source_id)


def get_entries_since(last_sync_id=0, limit=1000):
    return SyncEntry.query.filter(
        SyncEntry.id > (last_sync_id or 0)
    ).order_by(SyncEntry.id.asc()).limit(limit).all()


def get_max_sync_id():
    return db.session.query(db.func.max(SyncEntry.id)).scalar() or 0
