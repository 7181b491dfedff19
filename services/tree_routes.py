"""Note-tree routes: reparent, reorder and clone note placements.

Every structural change shifts siblings, writes the row and appends the
sync and audit entries inside one transaction.
"""
from services import audit_service, sync_table, tree_service
from services.validation_service import parse_bool
from tree_utils import in_transaction

ALREADY_IN_PARENT = 'This note already exists in target parent note.'


def _not_found(message):
    import app as a

    a.app.logger.warning("Tree operation rejected: %s", message)
    return a.jsonify({'error': message}), 404


def move_to(note_tree_id, parent_note_id):
    import app as a

    app = a.app
    db = a.db
    get_browser_id = a.get_browser_id
    get_current_user = a.get_current_user
    jsonify = a.jsonify

    user = get_current_user()
    if not user:
        return jsonify({'error': 'Not authorized'}), 401

    row = tree_service.get_tree_row(note_tree_id)
    if not row:
        return _not_found(f"Note tree {note_tree_id} doesn't exist.")
    if not tree_service.note_exists(parent_note_id):
        return _not_found(f"Parent note {parent_note_id} doesn't exist.")

    with in_transaction(db.session):
        new_pos = tree_service.next_note_pos(parent_note_id)
        tree_service.place_row(row, parent_note_id, new_pos)

        sync_table.add_note_tree_sync(note_tree_id)
        audit_service.add_audit(audit_service.CHANGE_PARENT, get_browser_id(), None, None, parent_note_id)

    app.logger.info("Moved note tree %s to parent %s at %s", note_tree_id, parent_note_id, new_pos)
    return jsonify({})


def _move_next_to(note_tree_id, target_tree_id, after):
    import app as a

    app = a.app
    db = a.db
    get_browser_id = a.get_browser_id
    get_current_user = a.get_current_user
    jsonify = a.jsonify

    user = get_current_user()
    if not user:
        return jsonify({'error': 'Not authorized'}), 401

    target = tree_service.get_tree_row(target_tree_id)
    if not target:
        label = 'After' if after else 'Before'
        return _not_found(f"{label} note {target_tree_id} doesn't exist.")
    row = tree_service.get_tree_row(note_tree_id)
    if not row:
        return _not_found(f"Note tree {note_tree_id} doesn't exist.")

    parent_note_id = target.note_pid
    target_pos = target.note_pos
    new_pos = target_pos + 1 if after else target_pos

    with in_transaction(db.session):
        tree_service.shift_siblings(parent_note_id, target_pos, inclusive=not after)
        tree_service.place_row(row, parent_note_id, new_pos)

        sync_table.add_note_tree_sync(note_tree_id)
        sync_table.add_note_reordering_sync(parent_note_id)
        audit_service.add_audit(audit_service.CHANGE_POSITION, get_browser_id(), parent_note_id)

    app.logger.info(
        "Moved note tree %s %s %s (parent %s, position %s)",
        note_tree_id, 'after' if after else 'before', target_tree_id, parent_note_id, new_pos
    )
    return jsonify({})


def move_before(note_tree_id, before_note_tree_id):
    return _move_next_to(note_tree_id, before_note_tree_id, after=False)


def move_after(note_tree_id, after_note_tree_id):
    return _move_next_to(note_tree_id, after_note_tree_id, after=True)


def clone_to(note_id, parent_note_id):
    import app as a

    app = a.app
    db = a.db
    get_browser_id = a.get_browser_id
    get_current_user = a.get_current_user
    jsonify = a.jsonify

    user = get_current_user()
    if not user:
        return jsonify({'error': 'Not authorized'}), 401

    if not tree_service.get_note(note_id):
        return _not_found(f"Note {note_id} doesn't exist.")
    if not tree_service.note_exists(parent_note_id):
        return _not_found(f"Parent note {parent_note_id} doesn't exist.")

    if tree_service.find_live_placement(note_id, parent_note_id):
        app.logger.info("Clone of note %s skipped, already under %s", note_id, parent_note_id)
        return jsonify({'success': False, 'message': ALREADY_IN_PARENT})

    with in_transaction(db.session):
        new_pos = tree_service.next_note_pos(parent_note_id)
        row = tree_service.create_placement(note_id, parent_note_id, new_pos)
        new_tree_id = row.note_tree_id

        sync_table.add_note_tree_sync(new_tree_id)
        audit_service.add_audit(audit_service.CHANGE_PARENT, get_browser_id(), note_id, None, parent_note_id)

    app.logger.info("Cloned note %s to parent %s as %s", note_id, parent_note_id, new_tree_id)
    return jsonify({'success': True, 'note_tree_id': new_tree_id})


def clone_after(note_id, after_note_tree_id):
    import app as a

    app = a.app
    db = a.db
    get_browser_id = a.get_browser_id
    get_current_user = a.get_current_user
    jsonify = a.jsonify

    user = get_current_user()
    if not user:
        return jsonify({'error': 'Not authorized'}), 401

    target = tree_service.get_tree_row(after_note_tree_id)
    if not target:
        return _not_found(f"After note {after_note_tree_id} doesn't exist.")
    if not tree_service.get_note(note_id):
        return _not_found(f"Note {note_id} doesn't exist.")

    parent_note_id = target.note_pid
    target_pos = target.note_pos

    if tree_service.find_live_placement(note_id, parent_note_id):
        app.logger.info("Clone of note %s skipped, already under %s", note_id, parent_note_id)
        return jsonify({'success': False, 'message': ALREADY_IN_PARENT})

    with in_transaction(db.session):
        tree_service.shift_siblings(parent_note_id, target_pos, inclusive=False)
        row = tree_service.create_placement(note_id, parent_note_id, target_pos + 1)
        new_tree_id = row.note_tree_id

        sync_table.add_note_tree_sync(new_tree_id)
        sync_table.add_note_reordering_sync(parent_note_id)
        audit_service.add_audit(audit_service.CHANGE_POSITION, get_browser_id(), parent_note_id)

    app.logger.info("Cloned note %s after %s as %s", note_id, after_note_tree_id, new_tree_id)
    return jsonify({'success': True, 'note_tree_id': new_tree_id})


def set_expanded(note_tree_id, expanded):
    """Expansion is local UI state: no sync entry, no audit entry, date_modified untouched."""
    import app as a

    db = a.db
    get_current_user = a.get_current_user
    jsonify = a.jsonify

    user = get_current_user()
    if not user:
        return jsonify({'error': 'Not authorized'}), 401

    row = tree_service.get_tree_row(note_tree_id)
    if not row:
        return _not_found(f"Note tree {note_tree_id} doesn't exist.")

    with in_transaction(db.session):
        row.is_expanded = parse_bool(expanded)

    return jsonify({})


def get_tree():
    import app as a

    get_current_user = a.get_current_user
    jsonify = a.jsonify

    user = get_current_user()
    if not user:
        return jsonify({'error': 'Not authorized'}), 401
    return jsonify({'notes': tree_service.load_tree()})


def get_children(parent_note_id):
    import app as a

    get_current_user = a.get_current_user
    jsonify = a.jsonify

    user = get_current_user()
    if not user:
        return jsonify({'error': 'Not authorized'}), 401
    if not tree_service.note_exists(parent_note_id):
        return _not_found(f"Parent note {parent_note_id} doesn't exist.")
    children = tree_service.list_children(parent_note_id)
    return jsonify({'parent_note_id': parent_note_id, 'children': [c.to_dict() for c in children]})
