from flask import Blueprint, jsonify, current_app
from flask_login import login_required, current_user

from lexiboard.services.games import stats


players = Blueprint('players', __name__)


@players.route('/player/stats', methods=['GET'])
@login_required
def player_stats():
    return jsonify(stats.stats_for(current_user.id).to_dict())


@players.route('/leaderboard', methods=['GET'])
def global_leaderboard():
    board = stats.global_leaderboard()
    current_app.logger.info(f"[leaderboard] scope=global rows={len(board)}")
    return jsonify(board)


@players.route('/leaderboard/weekly', methods=['GET'])
def weekly_leaderboard():
    board = stats.weekly_leaderboard()
    current_app.logger.info(f"[leaderboard] scope=weekly rows={len(board)}")
    return jsonify(board)
