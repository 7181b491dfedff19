"""Sibling position maintenance for note-tree rows.

Positions are plain integers per parent. Opening a slot is a single
``note_pos = note_pos + 1`` update over the later siblings; positions are
never compacted, so gaps left behind by moves are expected.
"""
from models import db, Note, NoteTree
from tree_utils import ROOT_NOTE_ID, new_entity_id, now_timestamp


def get_note(note_id):
    note = db.session.get(Note, note_id)
    if note is None or note.is_deleted:
        return None
    return note


def note_exists(note_id):
    """The virtual root note always exists."""
    return note_id == ROOT_NOTE_ID or get_note(note_id) is not None


def get_tree_row(note_tree_id):
    """Return a live (not soft-deleted) tree row or None."""
    row = db.session.get(NoteTree, note_tree_id)
    if row is None or row.is_deleted:
        return None
    return row


def next_note_pos(parent_note_id):
    max_pos = db.session.query(db.func.max(NoteTree.note_pos)).filter(
        NoteTree.note_pid == parent_note_id,
        NoteTree.is_deleted.is_(False)
    ).scalar()
    return 0 if max_pos is None else max_pos + 1


def shift_siblings(parent_note_id, from_pos, inclusive=True):
    """
    Push live siblings at (or after) ``from_pos`` one slot down.

    Sibling ``date_modified`` is left alone so that real edits to those rows
    win over a pure reorder when changes are merged elsewhere.
    """
    if inclusive:
        pos_filter = NoteTree.note_pos >= from_pos
    else:
        pos_filter = NoteTree.note_pos > from_pos
    return NoteTree.query.filter(
        NoteTree.note_pid == parent_note_id,
        pos_filter,
        NoteTree.is_deleted.is_(False)
    ).update({NoteTree.note_pos: NoteTree.note_pos + 1}, synchronize_session='fetch')


def place_row(row, parent_note_id, note_pos):
    row.note_pid = parent_note_id
    row.note_pos = note_pos
    row.date_modified = now_timestamp()
    return row


def find_live_placement(note_id, parent_note_id):
    return NoteTree.query.filter_by(
        note_id=note_id,
        note_pid=parent_note_id,
        is_deleted=False
    ).first()


def create_placement(note_id, parent_note_id, note_pos):
    row = NoteTree(
        note_tree_id=new_entity_id(),
        note_id=note_id,
        note_pid=parent_note_id,
        note_pos=note_pos,
        is_expanded=False,
        is_deleted=False,
        date_modified=now_timestamp()
    )
    db.session.add(row)
    return row


def list_children(parent_note_id):
    return NoteTree.query.filter(
        NoteTree.note_pid == parent_note_id,
        NoteTree.is_deleted.is_(False)
    ).order_by(NoteTree.note_pos.asc(), NoteTree.note_tree_id.asc()).all()


def reordering_snapshot(parent_note_id):
    """Map of note_tree_id -> note_pos for a parent's live children."""
    return {row.note_tree_id: row.note_pos for row in list_children(parent_note_id)}


def load_tree():
    rows = db.session.query(NoteTree, Note.note_title).join(
        Note, NoteTree.note_id == Note.note_id
    ).filter(
        NoteTree.is_deleted.is_(False),
        Note.is_deleted.is_(False)
    ).order_by(NoteTree.note_pid.asc(), NoteTree.note_pos.asc()).all()
    payload = []
    for row, title in rows:
        data = row.to_dict()
        data['note_title'] = title
        payload.append(data)
    return payload
