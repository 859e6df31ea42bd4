from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user

from lexiboard.services.games import gameplay, matchmaking
from lexiboard.services.games.catalog import list_templates
from lexiboard.services.games.errors import GameError, InvalidRequest


sessions = Blueprint('sessions', __name__)


@sessions.errorhandler(GameError)
def handle_game_error(exc):
    current_app.logger.warning(f"[rejected] path={request.path} user={getattr(current_user, 'id', None)} error={exc.code}: {exc.message}")
    return jsonify(exc.to_dict()), exc.status


def _payload():
    return request.get_json(silent=True) or {}


def _required(data, key):
    value = data.get(key)
    if value is None:
        raise InvalidRequest(f'{key} is required')
    return value


def _flag(data, key):
    value = data.get(key, False)
    if isinstance(value, str):
        return value.lower() in ('1', 'true', 'yes')
    return bool(value)


def _session_payload(session, status=200):
    payload = gameplay.session_state(session.id)
    return jsonify(payload), status


@sessions.route('/boards', methods=['GET'])
def list_boards():
    return jsonify([t.to_dict() for t in list_templates()])


@sessions.route('/sessions/solo', methods=['POST'])
@login_required
def start_solo():
    data = _payload()
    session = matchmaking.start_solo(current_user.id, _required(data, 'board_id'), data.get('turn_limit'))
    return _session_payload(session, 201)


@sessions.route('/matchmaking/random', methods=['POST'])
@login_required
def join_random():
    data = _payload()
    session = matchmaking.join_random(
        current_user.id,
        _required(data, 'board_id'),
        _flag(data, 'is_live_match'),
        data.get('max_players', 2),
    )
    return _session_payload(session)


@sessions.route('/matchmaking/private', methods=['POST'])
@login_required
def create_private():
    data = _payload()
    session = matchmaking.create_private_lobby(
        current_user.id,
        _required(data, 'board_id'),
        _flag(data, 'is_live_match'),
        data.get('max_players', 2),
    )
    return _session_payload(session, 201)


@sessions.route('/matchmaking/join', methods=['POST'])
@login_required
def join_by_code():
    data = _payload()
    session = matchmaking.join_by_code(current_user.id, data.get('invite_code'))
    return _session_payload(session)


@sessions.route('/sessions/active', methods=['GET'])
@login_required
def active_sessions():
    return jsonify(gameplay.active_sessions(current_user.id))


@sessions.route('/sessions/<int:session_id>', methods=['GET'])
@login_required
def get_session(session_id):
    return jsonify(gameplay.session_state(session_id))


@sessions.route('/sessions/<int:session_id>/turn', methods=['GET'])
@login_required
def get_turn_status(session_id):
    return jsonify(gameplay.turn_status(session_id, current_user.id))


@sessions.route('/sessions/<int:session_id>/moves', methods=['POST'])
@login_required
def submit_move(session_id):
    data = _payload()
    positions = _required(data, 'positions')
    if not isinstance(positions, list):
        raise InvalidRequest('positions must be a list of {row, col}')
    outcome = gameplay.play_move(session_id, current_user.id, positions)
    state = gameplay.session_state(session_id)
    return jsonify({
        'word': outcome.resolution.word,
        'score': outcome.resolution.score,
        'effects': [e.to_dict() for e in outcome.resolution.effects],
        'verdict': outcome.verdict.value,
        'session': state,
    }), 201
