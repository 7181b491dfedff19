from flask_sqlalchemy import SQLAlchemy
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from datetime import datetime

db = SQLAlchemy()


def _iso(value):
    return value.isoformat() if value else None


class User(UserMixin, db.Model):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    password_hash = db.Column(db.String(200), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)


class Note(db.Model):
    __tablename__ = 'notes'

    note_id = db.Column(db.String(32), primary_key=True)
    note_title = db.Column(db.String(200), nullable=False, default='new note')
    note_text = db.Column(db.Text, nullable=True)
    is_protected = db.Column(db.Boolean, default=False, nullable=False)
    is_deleted = db.Column(db.Boolean, default=False, nullable=False)
    date_created = db.Column(db.DateTime, default=datetime.utcnow)
    date_modified = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'note_id': self.note_id,
            'note_title': self.note_title,
            'is_protected': self.is_protected,
            'is_deleted': self.is_deleted,
            'date_created': _iso(self.date_created),
            'date_modified': _iso(self.date_modified),
        }


class NoteTree(db.Model):
    """Placement of a note under a parent note. A note can be placed (cloned) under several parents."""
    __tablename__ = 'notes_tree'
    __table_args__ = (
        db.Index('ix_notes_tree_parent_pos', 'note_pid', 'note_pos'),
    )

    note_tree_id = db.Column(db.String(32), primary_key=True)
    note_id = db.Column(db.String(32), db.ForeignKey('notes.note_id'), nullable=False, index=True)
    note_pid = db.Column(db.String(32), nullable=False)  # parent note id, 'root' for top level
    note_pos = db.Column(db.Integer, nullable=False, default=0)
    is_expanded = db.Column(db.Boolean, default=False, nullable=False)
    is_deleted = db.Column(db.Boolean, default=False, nullable=False)
    date_modified = db.Column(db.DateTime, default=datetime.utcnow)

    note = db.relationship('Note', backref=db.backref('tree_rows', lazy=True), lazy=True)

    def to_dict(self):
        return {
            'note_tree_id': self.note_tree_id,
            'note_id': self.note_id,
            'note_pid': self.note_pid,
            'note_pos': self.note_pos,
            'is_expanded': self.is_expanded,
            'is_deleted': self.is_deleted,
            'date_modified': _iso(self.date_modified),
        }


class SyncEntry(db.Model):
    """Change-log row. One row per entity; re-registering an entity gives it a newer id."""
    __tablename__ = 'sync'
    __table_args__ = (
        db.UniqueConstraint('entity_name', 'entity_id', name='ux_sync_entity'),
        # ids must never be reused after a replace, consumers poll by id
        {'sqlite_autoincrement': True},
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    entity_name = db.Column(db.String(50), nullable=False)
    entity_id = db.Column(db.String(32), nullable=False)
    source_id = db.Column(db.String(32), nullable=False)
    sync_date = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'entity_name': self.entity_name,
            'entity_id': self.entity_id,
            'source_id': self.source_id,
            'sync_date': _iso(self.sync_date),
        }


class AuditEntry(db.Model):
    __tablename__ = 'audit_log'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    date_modified = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    category = db.Column(db.String(20), nullable=False)
    browser_id = db.Column(db.String(64), nullable=True)
    note_id = db.Column(db.String(32), nullable=True, index=True)
    change_from = db.Column(db.Text, nullable=True)
    change_to = db.Column(db.Text, nullable=True)
    comment = db.Column(db.Text, nullable=True)

    def to_dict(self):
        return {
            'id': self.id,
            'date_modified': _iso(self.date_modified),
            'category': self.category,
            'browser_id': self.browser_id,
            'note_id': self.note_id,
            'change_from': self.change_from,
            'change_to': self.change_to,
            'comment': self.comment,
        }
