from flask import Blueprint, request, jsonify, current_app

from services.user_service import UserService

wallet_blueprint = Blueprint('wallet', __name__)


@wallet_blueprint.route('/users', methods=['POST'])
def register_user():
    data = request.get_json(silent=True) or {}
    user_id = data.get('uid')
    if not user_id:
        return jsonify({"message": "uid is required"}), 400

    user, created = UserService.register_user(user_id, display_name=data.get('display_name'))
    current_app.logger.info("users.post uid=%s created=%s", user_id, created)
    return jsonify(user.to_dict()), 201 if created else 200


@wallet_blueprint.route('/users/<string:user_id>/wallet', methods=['GET'])
def get_wallet(user_id):
    try:
        limit = int(request.args.get('limit', 100))
    except ValueError:
        return jsonify({"message": "limit must be an integer"}), 400
    limit = max(1, min(limit, 500))
    return jsonify(UserService.get_wallet(user_id, limit=limit)), 200
