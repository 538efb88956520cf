from datetime import timedelta
import uuid

from flask import Blueprint, request, jsonify, current_app, g

from services.errors import StorageTransactionError
from services.experience_service import ExperienceService
from services.join_service import JoinService
from services.release_service import ReleaseService, parse_started_ratio
from services.user_service import UserService

experience_blueprint = Blueprint('experiences', __name__)


def _schedule_release_retry(experience_id, min_started_ratio):
    scheduler = current_app.extensions.get('scheduler')
    if not scheduler:
        current_app.logger.warning("release_retry.no_scheduler experience_id=%s", experience_id)
        return False
    from jobs.release_escrow import attempt_release

    delay = current_app.config.get("RELEASE_RETRY_DELAY_SECONDS", 30)
    scheduler.enqueue_in(timedelta(seconds=delay), attempt_release, experience_id, min_started_ratio)
    current_app.logger.info("release_retry.scheduled experience_id=%s delay=%s", experience_id, delay)
    return True


@experience_blueprint.before_request
def assign_cid():
    g.cid = request.headers.get("X-Request-Id") or str(uuid.uuid4())


@experience_blueprint.route('/experiences', methods=['POST'])
def create_experience():
    data = request.get_json(silent=True) or {}
    host_id = data.get('host_id')
    title = data.get('title')
    max_participants = data.get('max_participants')
    coin_price = data.get('coin_price', 0)

    if not host_id or not title or max_participants is None:
        return jsonify({"message": "host_id, title and max_participants are required"}), 400

    experience = ExperienceService.create_experience(host_id, title, max_participants, coin_price)
    return jsonify(experience.to_dict()), 201


@experience_blueprint.route('/experiences/<string:experience_id>', methods=['GET'])
def get_experience(experience_id):
    return jsonify(ExperienceService.get_experience_view(experience_id)), 200


@experience_blueprint.route('/experiences/<string:experience_id>/publish', methods=['POST'])
def publish_experience(experience_id):
    experience = ExperienceService.publish_experience(experience_id)
    return jsonify(experience.to_dict()), 200


@experience_blueprint.route('/experiences/<string:experience_id>/join', methods=['POST'])
def join_experience(experience_id):
    data = request.get_json(silent=True) or {}
    user_id = data.get('user_id')
    if not user_id:
        return jsonify({"message": "user_id is required"}), 400

    socketio = current_app.extensions.get('socketio')
    result = JoinService.join_experience(experience_id, user_id, socketio=socketio)
    return jsonify(result), 201


@experience_blueprint.route('/experiences/<string:experience_id>/ticket/<string:user_id>', methods=['GET'])
def get_ticket(experience_id, user_id):
    ticket = UserService.get_ticket(experience_id, user_id)
    return jsonify(ticket.to_dict()), 200


@experience_blueprint.route('/experiences/<string:experience_id>/start', methods=['POST'])
def start_experience(experience_id):
    """
    Confirm arrival for one ticket holder, then try to release the escrow.

    A release that loses its conflict retries is scheduled for later; the
    start confirmation itself is already committed at that point.
    """
    data = request.get_json(silent=True) or {}
    user_id = data.get('user_id')
    if not user_id:
        return jsonify({"message": "user_id is required"}), 400
    min_started_ratio = data.get('min_started_ratio',
                                 current_app.config.get("RELEASE_MIN_STARTED_RATIO", 1.0))
    parse_started_ratio(min_started_ratio)

    socketio = current_app.extensions.get('socketio')
    ticket = ReleaseService.mark_ticket_started(experience_id, user_id, socketio=socketio)

    release_scheduled = False
    try:
        released = ReleaseService.release_escrow_if_threshold(
            experience_id, min_started_ratio, socketio=socketio
        )
    except StorageTransactionError:
        current_app.logger.exception("start_experience.release_conflict experience_id=%s", experience_id)
        released = False
        release_scheduled = _schedule_release_retry(experience_id, min_started_ratio)

    return jsonify({
        "ticket": ticket,
        "released": released,
        "release_scheduled": release_scheduled,
    }), 200


@experience_blueprint.route('/experiences/<string:experience_id>/release', methods=['POST'])
def release_escrow(experience_id):
    data = request.get_json(silent=True) or {}
    min_started_ratio = data.get('min_started_ratio',
                                 current_app.config.get("RELEASE_MIN_STARTED_RATIO", 1.0))
    parse_started_ratio(min_started_ratio)
    socketio = current_app.extensions.get('socketio')
    released = ReleaseService.release_escrow_if_threshold(experience_id, min_started_ratio, socketio=socketio)
    return jsonify({"released": released}), 200


@experience_blueprint.route('/experiences/<string:experience_id>/cancel', methods=['POST'])
def cancel_experience(experience_id):
    socketio = current_app.extensions.get('socketio')
    refunded = ExperienceService.cancel_experience(experience_id, socketio=socketio)
    return jsonify({"status": "cancelled", "refunded_user_ids": refunded}), 200
