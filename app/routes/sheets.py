from flask import Blueprint, jsonify, request

from app.deps import new_context, sheet_sync_service
from services.exceptions import ValidationError


sheets_bp = Blueprint('sheets', __name__, url_prefix='/sheet')


@sheets_bp.route('/warehouse/<warehouse_id>', methods=['GET'])
def summarize_warehouse_sheet(warehouse_id):
    """Dry run: what a sync of ``?url=`` would do, without writing anything."""
    ctx = new_context()
    summary = sheet_sync_service().summarize(ctx, warehouse_id, request.args.get('url', ''))
    return jsonify({"ok": True, "data": summary.to_dict()})


@sheets_bp.route('/warehouse/<warehouse_id>', methods=['PUT'])
def sync_warehouse_sheet(warehouse_id):
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError("JSON body with 'url' is required")

    ctx = new_context()
    ctx.logger.info("Sync requested for warehouse %s", warehouse_id)
    result = sheet_sync_service().sync(ctx, warehouse_id, payload.get('url', ''))
    return jsonify({"ok": True, "data": result.to_dict()})
