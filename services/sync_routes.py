"""Read-only view of the change-tracking log."""
from services import sync_table, tree_service
from services.validation_service import parse_int

MAX_ENTRIES = 1000


def changed_entries():
    import app as a

    app = a.app
    get_current_user = a.get_current_user
    jsonify = a.jsonify
    request = a.request

    user = get_current_user()
    if not user:
        return jsonify({'error': 'Not authorized'}), 401

    last_sync_id = parse_int(request.args.get('lastSyncId'), default=0, minimum=0)
    limit = parse_int(request.args.get('limit'), default=MAX_ENTRIES, minimum=1, maximum=MAX_ENTRIES)
    entries = sync_table.get_entries_since(last_sync_id, limit=limit)

    payload = []
    for entry in entries:
        data = entry.to_dict()
        if entry.entity_name == sync_table.ENTITY_NOTES_REORDERING:
            data['ordering'] = tree_service.reordering_snapshot(entry.entity_id)
        payload.append(data)

    return jsonify({
        'source_id': app.config['SOURCE_ID'],
        'max_sync_id': sync_table.get_max_sync_id(),
        'entries': payload,
    })
