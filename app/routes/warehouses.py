from flask import Blueprint, jsonify, request

from app.deps import new_context, warehouse_service


warehouses_bp = Blueprint('warehouses', __name__, url_prefix='/warehouses')


@warehouses_bp.route('', methods=['POST'])
def create_warehouse():
    payload = request.get_json(silent=True) or {}
    warehouse_id = warehouse_service().create_warehouse(payload.get('name', ''))
    return jsonify({"ok": True, "data": {"warehouseID": warehouse_id}}), 201


@warehouses_bp.route('/<warehouse_id>', methods=['DELETE'])
def delete_warehouse(warehouse_id):
    warehouse_service().delete_warehouse(new_context(), warehouse_id)
    return '', 204


@warehouses_bp.route('/<warehouse_id>/lockers/<locker_id>', methods=['DELETE'])
def delete_locker(warehouse_id, locker_id):
    warehouse_service().delete_locker(new_context(), warehouse_id, locker_id)
    return '', 204
