import os

from dotenv import load_dotenv
from flask import Flask, request, jsonify, session

load_dotenv()

from models import db, User
from services import audit_routes, sync_routes, tree_routes, user_routes
from tree_utils import new_entity_id

app = Flask(__name__)
app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get('DATABASE_URL', 'sqlite:///notetree.db')
app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production')
app.config['PERMANENT_SESSION_LIFETIME'] = int(os.environ.get('PERMANENT_SESSION_LIFETIME', 30 * 24 * 60 * 60))
app.config['API_SHARED_KEY'] = os.environ.get('API_SHARED_KEY')  # Optional shared key for API callers
# Identifies this instance in sync rows so a replica can skip its own changes
app.config['SOURCE_ID'] = os.environ.get('SOURCE_ID') or new_entity_id()

db.init_app(app)


def get_current_user():
    """Resolve the current user from a shared API key + user id header, else fall back to session."""
    api_key = request.headers.get('X-API-Key')
    api_user_id = request.headers.get('X-User-Id')
    shared_key = app.config.get('API_SHARED_KEY')
    if shared_key and api_key and api_user_id:
        try:
            api_uid_int = int(api_user_id)
        except (TypeError, ValueError):
            api_uid_int = None
        if api_uid_int and api_key == shared_key:
            user = db.session.get(User, api_uid_int)
            if user:
                return user

    user_id = session.get('user_id')
    if user_id:
        return db.session.get(User, user_id)
    return None


def get_browser_id():
    """Client-supplied id of the browser tab that made the change, used in audit entries."""
    return request.headers.get('X-Browser-Id')


with app.app_context():
    db.create_all()
    app.logger.info("Note tree service ready (source id %s)", app.config['SOURCE_ID'])


# User/session routes
@app.route('/api/login', methods=['POST'])
def login():
    return user_routes.login()

@app.route('/api/logout', methods=['POST'])
def logout():
    return user_routes.logout()

@app.route('/api/create-user', methods=['POST'])
def create_user():
    return user_routes.create_user()

@app.route('/api/current-user')
def current_user_info():
    return user_routes.current_user_info()


# Note tree routes
@app.route('/api/tree')
def get_tree():
    return tree_routes.get_tree()

@app.route('/api/notes/<parent_note_id>/children')
def get_children(parent_note_id):
    return tree_routes.get_children(parent_note_id)

@app.route('/api/notes/<note_tree_id>/moveTo/<parent_note_id>', methods=['PUT'])
def move_to(note_tree_id, parent_note_id):
    return tree_routes.move_to(note_tree_id, parent_note_id)

@app.route('/api/notes/<note_tree_id>/moveBefore/<before_note_tree_id>', methods=['PUT'])
def move_before(note_tree_id, before_note_tree_id):
    return tree_routes.move_before(note_tree_id, before_note_tree_id)

@app.route('/api/notes/<note_tree_id>/moveAfter/<after_note_tree_id>', methods=['PUT'])
def move_after(note_tree_id, after_note_tree_id):
    return tree_routes.move_after(note_tree_id, after_note_tree_id)

@app.route('/api/notes/<note_id>/cloneTo/<parent_note_id>', methods=['PUT'])
def clone_to(note_id, parent_note_id):
    return tree_routes.clone_to(note_id, parent_note_id)

@app.route('/api/notes/<note_id>/cloneAfter/<after_note_tree_id>', methods=['PUT'])
def clone_after(note_id, after_note_tree_id):
    return tree_routes.clone_after(note_id, after_note_tree_id)

@app.route('/api/notes/<note_tree_id>/expanded/<expanded>', methods=['PUT'])
def set_expanded(note_tree_id, expanded):
    return tree_routes.set_expanded(note_tree_id, expanded)


# Change log / audit
@app.route('/api/sync/changed')
def sync_changed():
    return sync_routes.changed_entries()

@app.route('/api/audit')
def audit_log():
    return audit_routes.list_audit()


if __name__ == '__main__':
    app.run(host='0.0.0.0', debug=True)
