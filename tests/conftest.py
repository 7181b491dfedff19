import os

os.environ['DATABASE_URL'] = 'sqlite://'
os.environ['API_SHARED_KEY'] = 'test-shared-key'
os.environ['SOURCE_ID'] = 'testsource01'

from datetime import datetime

import pytest

from app import app as flask_app, db
from models import Note, NoteTree, User

OLD_DATE = datetime(2020, 1, 1, 12, 0, 0)


@pytest.fixture
def app():
    flask_app.config['TESTING'] = True
    with flask_app.app_context():
        db.drop_all()
        db.create_all()
        yield flask_app
        db.session.remove()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def user(app):
    user = User(username='admin')
    user.set_password('secret-pass')
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def auth_headers(user):
    return {
        'X-API-Key': 'test-shared-key',
        'X-User-Id': str(user.id),
        'X-Browser-Id': 'browser-1',
    }


def add_note(note_id, title=None, is_deleted=False):
    note = Note(note_id=note_id, note_title=title or note_id, is_deleted=is_deleted)
    db.session.add(note)
    return note


def add_row(note_tree_id, note_id, note_pid, note_pos, is_deleted=False):
    row = NoteTree(
        note_tree_id=note_tree_id,
        note_id=note_id,
        note_pid=note_pid,
        note_pos=note_pos,
        is_deleted=is_deleted,
        date_modified=OLD_DATE
    )
    db.session.add(row)
    return row


@pytest.fixture
def tree(app):
    """
    root
      t_a (n_a)
        t_d (n_d)
      t_b (n_b)
      t_c (n_c)
    """
    for note_id in ('n_a', 'n_b', 'n_c', 'n_d'):
        add_note(note_id, title=note_id.upper())
    add_row('t_a', 'n_a', 'root', 0)
    add_row('t_b', 'n_b', 'root', 1)
    add_row('t_c', 'n_c', 'root', 2)
    add_row('t_d', 'n_d', 'n_a', 0)
    db.session.commit()


def children_of(parent_note_id):
    """Live children as [(note_tree_id, note_pos)] ordered by position, read fresh from the DB."""
    db.session.expire_all()
    rows = NoteTree.query.filter_by(note_pid=parent_note_id, is_deleted=False).order_by(NoteTree.note_pos).all()
    return [(r.note_tree_id, r.note_pos) for r in rows]
