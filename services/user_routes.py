"""User/session routes. Every tree, sync and audit route relies on get_current_user()."""


def login():
    import app as a

    User = a.User
    app = a.app
    jsonify = a.jsonify
    request = a.request
    session = a.session

    data = request.get_json(silent=True) or {}
    username = (data.get('username') or '').strip()
    password = data.get('password') or ''
    if not username or not password:
        return jsonify({'error': 'Username and password are required'}), 400

    user = User.query.filter_by(username=username).first()
    if not user or not user.check_password(password):
        app.logger.warning("Failed login for %s", username)
        return jsonify({'error': 'Invalid username or password'}), 401

    session['user_id'] = user.id
    session.permanent = True
    return jsonify({'success': True, 'user_id': user.id, 'username': user.username})


def logout():
    import app as a

    jsonify = a.jsonify
    session = a.session

    session.pop('user_id', None)
    return jsonify({'success': True})


def create_user():
    """The first user can be created anonymously; later ones need a signed-in user."""
    import app as a

    User = a.User
    db = a.db
    get_current_user = a.get_current_user
    jsonify = a.jsonify
    request = a.request
    session = a.session

    has_users = db.session.query(User.id).first() is not None
    if has_users and not get_current_user():
        return jsonify({'error': 'Not authorized'}), 401

    data = request.get_json(silent=True) or {}
    username = (data.get('username') or '').strip()
    password = data.get('password') or ''

    if not username:
        return jsonify({'error': 'Username is required'}), 400
    if len(password) < 4:
        return jsonify({'error': 'Password must be at least 4 characters'}), 400
    if User.query.filter_by(username=username).first():
        return jsonify({'error': 'Username already exists'}), 400

    user = User(username=username)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()

    if not has_users:
        session['user_id'] = user.id
        session.permanent = True

    return jsonify({'success': True, 'user_id': user.id, 'username': user.username}), 201


def current_user_info():
    import app as a

    get_current_user = a.get_current_user
    jsonify = a.jsonify

    user = get_current_user()
    if user:
        return jsonify({'user_id': user.id, 'username': user.username})
    return jsonify({'user_id': None, 'username': None})
