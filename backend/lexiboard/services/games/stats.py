"""Player stats and leaderboards built from completed sessions."""

from datetime import datetime, timedelta, timezone
import time
from typing import List, Optional

from flask import current_app
from sqlalchemy import func

from lexiboard import db
from lexiboard.models import (
    GameSession, PlayerStats, User, OUTCOME_ABANDONED, OUTCOME_WON, STATUS_COMPLETED,
)

LEADERBOARD_SIZE = 100


def _stats_row(user_id: int) -> PlayerStats:
    stats = PlayerStats.query.filter_by(user_id=user_id).first()
    if stats is None:
        stats = PlayerStats(user_id=user_id)
        db.session.add(stats)
    return stats


def level_for(experience_points: int) -> int:
    per_level = int(current_app.config.get('XP_PER_LEVEL', 1000))
    return experience_points // per_level + 1


def record_results(session, now: Optional[float] = None) -> List[PlayerStats]:
    """Fold a completed session into each seated player's stats.

    Runs in the caller's transaction, before the completing commit. A win
    extends the streak; a loss or an abandoned match resets it. Abandoned
    matches count as played but neither won nor lost.
    """
    now = time.time() if now is None else now
    words = {}
    for move in session.moves:
        words[move.user_id] = words.get(move.user_id, 0) + 1
    updated = []
    for player in session.players:
        stats = _stats_row(player.user_id)
        stats.total_games_played += 1
        if session.outcome == OUTCOME_WON and session.winner_user_id == player.user_id:
            stats.total_wins += 1
            stats.current_streak += 1
            stats.longest_streak = max(stats.longest_streak, stats.current_streak)
        else:
            if session.outcome != OUTCOME_ABANDONED:
                stats.total_losses += 1
            stats.current_streak = 0
        stats.highest_score = max(stats.highest_score, player.score)
        stats.total_words_formed += words.get(player.user_id, 0)
        stats.experience_points += player.score
        stats.level = level_for(stats.experience_points)
        stats.updated_at = now
        updated.append(stats)
    return updated


def stats_for(user_id: int) -> PlayerStats:
    """Stored stats, or an unsaved zeroed row for a user with no finished games."""
    stats = PlayerStats.query.filter_by(user_id=user_id).first()
    if stats is None:
        stats = PlayerStats(user_id=user_id, user=db.session.get(User, user_id))
    return stats


def global_leaderboard(limit: int = LEADERBOARD_SIZE) -> List[dict]:
    rows = PlayerStats.query.order_by(
        PlayerStats.experience_points.desc(),
        PlayerStats.total_wins.desc(),
        PlayerStats.user_id,
    ).limit(limit).all()
    return [{
        'user_id': s.user_id,
        'username': s.user.username if s.user else None,
        'level': s.level,
        'experience_points': s.experience_points,
        'total_wins': s.total_wins,
    } for s in rows]


def week_start(now: float) -> float:
    """Monday 00:00 UTC of the week containing ``now``."""
    day = datetime.fromtimestamp(now, tz=timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    return (day - timedelta(days=day.weekday())).timestamp()


def weekly_leaderboard(now: Optional[float] = None, limit: int = LEADERBOARD_SIZE) -> List[dict]:
    """Players with at least one win this week, most wins first, then by streak."""
    now = time.time() if now is None else now
    wins = func.count(GameSession.id).label('wins')
    rows = db.session.query(GameSession.winner_user_id, wins).filter(
        GameSession.status == STATUS_COMPLETED,
        GameSession.outcome == OUTCOME_WON,
        GameSession.winner_user_id.is_not(None),
        GameSession.completed_at >= week_start(now),
    ).group_by(GameSession.winner_user_id).all()

    board = []
    for user_id, count in rows:
        stats = PlayerStats.query.filter_by(user_id=user_id).first()
        user = db.session.get(User, user_id)
        board.append({
            'user_id': user_id,
            'username': user.username if user else None,
            'wins_this_week': int(count),
            'current_streak': stats.current_streak if stats else 0,
        })
    board.sort(key=lambda row: (-row['wins_this_week'], -row['current_streak'], row['user_id']))
    return board[:limit]
