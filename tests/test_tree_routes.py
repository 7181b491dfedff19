import pytest

from conftest import OLD_DATE, add_note, add_row, children_of
from models import AuditEntry, NoteTree, SyncEntry, db
from services import audit_service


def sync_keys():
    db.session.expire_all()
    return [(e.entity_name, e.entity_id) for e in SyncEntry.query.order_by(SyncEntry.id).all()]


def test_move_to_appends_at_end_of_parent(client, tree, auth_headers):
    resp = client.put('/api/notes/t_b/moveTo/n_a', headers=auth_headers)

    assert resp.status_code == 200
    assert resp.get_json() == {}
    assert children_of('n_a') == [('t_d', 0), ('t_b', 1)]
    assert children_of('root') == [('t_a', 0), ('t_c', 2)]

    row = db.session.get(NoteTree, 't_b')
    assert row.date_modified > OLD_DATE
    assert sync_keys() == [('notes_tree', 't_b')]

    audit = AuditEntry.query.one()
    assert audit.category == audit_service.CHANGE_PARENT
    assert audit.browser_id == 'browser-1'
    assert audit.note_id is None
    assert audit.change_to == 'n_a'


def test_move_to_empty_parent_starts_at_zero(client, tree, auth_headers):
    resp = client.put('/api/notes/t_c/moveTo/n_b', headers=auth_headers)

    assert resp.status_code == 200
    assert children_of('n_b') == [('t_c', 0)]


def test_move_to_ignores_deleted_children_for_position(client, tree, auth_headers):
    add_note('n_x')
    add_row('t_x', 'n_x', 'n_a', 10, is_deleted=True)
    db.session.commit()

    client.put('/api/notes/t_b/moveTo/n_a', headers=auth_headers)

    assert children_of('n_a') == [('t_d', 0), ('t_b', 1)]


def test_move_to_root(client, tree, auth_headers):
    resp = client.put('/api/notes/t_d/moveTo/root', headers=auth_headers)

    assert resp.status_code == 200
    assert children_of('root')[-1] == ('t_d', 3)
    assert children_of('n_a') == []


def test_move_to_missing_rows_returns_404(client, tree, auth_headers):
    missing_row = client.put('/api/notes/nope/moveTo/n_a', headers=auth_headers)
    missing_parent = client.put('/api/notes/t_b/moveTo/nope', headers=auth_headers)

    assert missing_row.status_code == 404
    assert missing_parent.status_code == 404
    assert missing_parent.get_json()['error'] == "Parent note nope doesn't exist."
    assert sync_keys() == []
    assert AuditEntry.query.count() == 0


def test_move_before_shifts_target_and_later_siblings(client, tree, auth_headers):
    resp = client.put('/api/notes/t_c/moveBefore/t_a', headers=auth_headers)

    assert resp.status_code == 200
    assert children_of('root') == [('t_c', 0), ('t_a', 1), ('t_b', 2)]
    assert sync_keys() == [('notes_tree', 't_c'), ('notes_reordering', 'root')]

    audit = AuditEntry.query.one()
    assert audit.category == audit_service.CHANGE_POSITION
    assert audit.note_id == 'root'


def test_move_before_keeps_sibling_modification_dates(client, tree, auth_headers):
    client.put('/api/notes/t_c/moveBefore/t_a', headers=auth_headers)

    db.session.expire_all()
    assert db.session.get(NoteTree, 't_a').date_modified == OLD_DATE
    assert db.session.get(NoteTree, 't_b').date_modified == OLD_DATE
    assert db.session.get(NoteTree, 't_c').date_modified > OLD_DATE


def test_move_before_missing_target(client, tree, auth_headers):
    resp = client.put('/api/notes/t_c/moveBefore/ghost', headers=auth_headers)

    assert resp.status_code == 404
    assert resp.get_json()['error'] == "Before note ghost doesn't exist."
    assert children_of('root') == [('t_a', 0), ('t_b', 1), ('t_c', 2)]
    assert sync_keys() == []


def test_move_after_places_right_behind_target(client, tree, auth_headers):
    resp = client.put('/api/notes/t_a/moveAfter/t_b', headers=auth_headers)

    assert resp.status_code == 200
    assert children_of('root') == [('t_b', 1), ('t_a', 2), ('t_c', 3)]
    assert sync_keys() == [('notes_tree', 't_a'), ('notes_reordering', 'root')]


def test_move_after_into_other_parent(client, tree, auth_headers):
    client.put('/api/notes/t_d/moveAfter/t_a', headers=auth_headers)

    assert children_of('root') == [('t_a', 0), ('t_d', 1), ('t_b', 2), ('t_c', 3)]
    assert children_of('n_a') == []


def test_move_after_missing_target(client, tree, auth_headers):
    resp = client.put('/api/notes/t_a/moveAfter/ghost', headers=auth_headers)

    assert resp.status_code == 404
    assert resp.get_json()['error'] == "After note ghost doesn't exist."


@pytest.mark.parametrize('action', ['moveBefore', 'moveAfter'])
def test_move_next_to_missing_moved_row(client, tree, auth_headers, action):
    resp = client.put(f'/api/notes/ghost/{action}/t_a', headers=auth_headers)

    assert resp.status_code == 404
    assert resp.get_json()['error'] == "Note tree ghost doesn't exist."
    assert children_of('root') == [('t_a', 0), ('t_b', 1), ('t_c', 2)]
    assert sync_keys() == []
    assert AuditEntry.query.count() == 0


def test_deleted_siblings_are_not_shifted(client, tree, auth_headers):
    add_note('n_x')
    add_row('t_x', 'n_x', 'root', 1, is_deleted=True)
    db.session.commit()

    client.put('/api/notes/t_c/moveBefore/t_b', headers=auth_headers)

    db.session.expire_all()
    assert db.session.get(NoteTree, 't_x').note_pos == 1
    assert children_of('root') == [('t_a', 0), ('t_c', 1), ('t_b', 2)]


def test_clone_to_adds_placement_at_end(client, tree, auth_headers):
    resp = client.put('/api/notes/n_d/cloneTo/root', headers=auth_headers)

    data = resp.get_json()
    assert resp.status_code == 200
    assert data['success'] is True
    new_id = data['note_tree_id']
    assert children_of('root')[-1] == (new_id, 3)
    assert children_of('n_a') == [('t_d', 0)]

    row = db.session.get(NoteTree, new_id)
    assert row.note_id == 'n_d'
    assert row.is_expanded is False
    assert sync_keys() == [('notes_tree', new_id)]
    audit = AuditEntry.query.one()
    assert audit.category == audit_service.CHANGE_PARENT
    assert audit.note_id == 'n_d'
    assert audit.change_to == 'root'


def test_clone_to_existing_parent_is_rejected(client, tree, auth_headers):
    resp = client.put('/api/notes/n_d/cloneTo/n_a', headers=auth_headers)

    assert resp.status_code == 200
    assert resp.get_json() == {
        'success': False,
        'message': 'This note already exists in target parent note.'
    }
    assert NoteTree.query.count() == 4
    assert sync_keys() == []


def test_clone_to_parent_with_deleted_placement(client, tree, auth_headers):
    add_row('t_old', 'n_d', 'n_b', 0, is_deleted=True)
    db.session.commit()

    resp = client.put('/api/notes/n_d/cloneTo/n_b', headers=auth_headers)

    assert resp.get_json()['success'] is True
    assert len(children_of('n_b')) == 1
    assert children_of('n_b')[0][1] == 0


def test_clone_to_missing_note(client, tree, auth_headers):
    resp = client.put('/api/notes/ghost/cloneTo/root', headers=auth_headers)

    assert resp.status_code == 404


def test_clone_to_missing_parent(client, tree, auth_headers):
    resp = client.put('/api/notes/n_d/cloneTo/ghost', headers=auth_headers)

    assert resp.status_code == 404
    assert resp.get_json()['error'] == "Parent note ghost doesn't exist."
    assert NoteTree.query.count() == 4
    assert sync_keys() == []


def test_clone_after_missing_note(client, tree, auth_headers):
    resp = client.put('/api/notes/ghost/cloneAfter/t_a', headers=auth_headers)

    assert resp.status_code == 404
    assert resp.get_json()['error'] == "Note ghost doesn't exist."
    assert NoteTree.query.count() == 4
    assert children_of('root') == [('t_a', 0), ('t_b', 1), ('t_c', 2)]
    assert sync_keys() == []


def test_clone_after_inserts_behind_target(client, tree, auth_headers):
    resp = client.put('/api/notes/n_d/cloneAfter/t_a', headers=auth_headers)

    new_id = resp.get_json()['note_tree_id']
    assert children_of('root') == [('t_a', 0), (new_id, 1), ('t_b', 2), ('t_c', 3)]
    assert sync_keys() == [('notes_tree', new_id), ('notes_reordering', 'root')]
    audit = AuditEntry.query.one()
    assert audit.category == audit_service.CHANGE_POSITION
    assert audit.note_id == 'root'


def test_clone_after_into_parent_already_holding_note(client, tree, auth_headers):
    resp = client.put('/api/notes/n_b/cloneAfter/t_a', headers=auth_headers)

    assert resp.get_json()['success'] is False
    assert children_of('root') == [('t_a', 0), ('t_b', 1), ('t_c', 2)]


def test_clone_after_missing_target(client, tree, auth_headers):
    resp = client.put('/api/notes/n_d/cloneAfter/ghost', headers=auth_headers)

    assert resp.status_code == 404
    assert resp.get_json()['error'] == "After note ghost doesn't exist."


def test_expanded_flag_is_local_state(client, tree, auth_headers):
    resp = client.put('/api/notes/t_a/expanded/1', headers=auth_headers)

    assert resp.status_code == 200
    db.session.expire_all()
    row = db.session.get(NoteTree, 't_a')
    assert row.is_expanded is True
    assert row.date_modified == OLD_DATE
    assert sync_keys() == []
    assert AuditEntry.query.count() == 0

    client.put('/api/notes/t_a/expanded/0', headers=auth_headers)
    db.session.expire_all()
    assert db.session.get(NoteTree, 't_a').is_expanded is False


def test_expanded_missing_row(client, tree, auth_headers):
    resp = client.put('/api/notes/ghost/expanded/1', headers=auth_headers)

    assert resp.status_code == 404


@pytest.mark.parametrize('url', [
    '/api/notes/t_b/moveTo/n_a',
    '/api/notes/t_c/moveBefore/t_a',
    '/api/notes/t_a/moveAfter/t_b',
    '/api/notes/n_d/cloneTo/root',
    '/api/notes/n_d/cloneAfter/t_a',
    '/api/notes/t_a/expanded/1',
])
def test_tree_changes_require_auth(client, tree, url):
    resp = client.put(url)

    assert resp.status_code == 401
    assert children_of('root') == [('t_a', 0), ('t_b', 1), ('t_c', 2)]


def test_failed_write_rolls_back_whole_operation(client, tree, auth_headers, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError('audit store unavailable')

    monkeypatch.setattr(audit_service, 'add_audit', boom)

    with pytest.raises(RuntimeError):
        client.put('/api/notes/t_c/moveBefore/t_a', headers=auth_headers)

    assert children_of('root') == [('t_a', 0), ('t_b', 1), ('t_c', 2)]
    assert sync_keys() == []


def test_get_tree_lists_rows_with_titles(client, tree, auth_headers):
    resp = client.get('/api/tree', headers=auth_headers)

    notes = resp.get_json()['notes']
    assert [(n['note_pid'], n['note_tree_id']) for n in notes] == [
        ('n_a', 't_d'),
        ('root', 't_a'),
        ('root', 't_b'),
        ('root', 't_c'),
    ]
    assert notes[0]['note_title'] == 'N_D'


def test_get_children(client, tree, auth_headers):
    resp = client.get('/api/notes/root/children', headers=auth_headers)

    data = resp.get_json()
    assert data['parent_note_id'] == 'root'
    assert [c['note_tree_id'] for c in data['children']] == ['t_a', 't_b', 't_c']
    assert client.get('/api/notes/ghost/children', headers=auth_headers).status_code == 404
