from services import audit_service
from services.validation_service import normalize_entity_id, parse_int


def list_audit():
    """Newest audit entries first, optionally for one note."""
    import app as a

    get_current_user = a.get_current_user
    jsonify = a.jsonify
    request = a.request

    user = get_current_user()
    if not user:
        return jsonify({'error': 'Not authorized'}), 401

    note_id = normalize_entity_id(request.args.get('note_id'))
    limit = parse_int(
        request.args.get('limit'),
        default=audit_service.DEFAULT_LIMIT,
        minimum=1,
        maximum=audit_service.MAX_LIMIT
    )
    entries = audit_service.recent_entries(note_id=note_id, limit=limit)
    return jsonify([e.to_dict() for e in entries])
