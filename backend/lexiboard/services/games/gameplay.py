"""Session reads and moves, each run under the session lock.

Every entry point goes through ``guarded_session``, which forfeits an
expired turn (and commits that) before the caller sees the session.
"""

from contextlib import contextmanager
import time
from typing import Optional

from flask import current_app

from lexiboard.models import STATUS_ACTIVE
from . import stats, turns
from .dictionary import get_word_list, letter_score
from .errors import NotAWord
from .events import publish
from .repository import repository


def _now(now: Optional[float]) -> float:
    return time.time() if now is None else now


def _save(session, events, now: float) -> None:
    """Commit the session, folding a completion into player stats first."""
    if any(event.name == 'session_completed' for event in events):
        updated = stats.record_results(session, now)
        current_app.logger.info(f"[stats] session={session.id} players={len(updated)} outcome={session.outcome}")
    repository.save(session)


def turn_settings() -> turns.TurnSettings:
    return turns.TurnSettings.from_config(current_app.config)


def poll_interval(session) -> int:
    cfg = current_app.config
    if session.is_live_match and session.status == STATUS_ACTIVE:
        return int(cfg.get('LIVE_POLL_INTERVAL_SEC', 3))
    return int(cfg.get('ASYNC_POLL_INTERVAL_SEC', 30))


@contextmanager
def guarded_session(session_id: int, now: float, settings: turns.TurnSettings):
    with repository.locked(session_id) as session:
        events = turns.check_timeout(session, now, settings)
        if events:
            _save(session, events, now)
            for event in events:
                if event.name == 'turn_forfeited':
                    current_app.logger.info(
                        f"[turn-forfeit] session={session.id} user={event.payload['user_id']} elapsed={event.payload['elapsed']:.0f}s"
                    )
                elif event.name == 'session_completed':
                    current_app.logger.info(f"[session-complete] session={session.id} outcome={session.outcome}")
            publish(session, events)
        yield session


def play_move(session_id: int, user_id: int, positions, is_valid_word=None, score_fn=None,
              now: Optional[float] = None) -> turns.MoveOutcome:
    now = _now(now)
    settings = turn_settings()
    is_valid_word = is_valid_word or get_word_list().is_valid_word
    score_fn = score_fn or letter_score
    with guarded_session(session_id, now, settings) as session:
        try:
            outcome = turns.submit_move(session, user_id, positions, is_valid_word, score_fn, now, settings)
        except NotAWord as exc:
            # Retry counters and a consumed turn persist even though the word failed
            _save(session, exc.events, now)
            current_app.logger.warning(
                f"[word-rejected] session={session.id} user={user_id} word={exc.word} "
                f"attempts={session.invalid_attempts} turn_consumed={exc.turn_consumed}"
            )
            publish(session, exc.events)
            raise
        _save(session, outcome.events, now)
        current_app.logger.info(
            f"[move] session={session.id} user={user_id} word={outcome.move.word} "
            f"score={outcome.move.score_awarded} verdict={outcome.verdict.value}"
        )
        if session.status != STATUS_ACTIVE:
            current_app.logger.info(
                f"[session-complete] session={session.id} outcome={session.outcome} winner={session.winner_user_id}"
            )
        publish(session, outcome.events)
        return outcome


def session_state(session_id: int, now: Optional[float] = None) -> dict:
    now = _now(now)
    with guarded_session(session_id, now, turn_settings()) as session:
        payload = session.to_dict(now=now)
        payload['poll_interval_seconds'] = poll_interval(session)
        return payload


def turn_status(session_id: int, user_id: int, now: Optional[float] = None) -> dict:
    now = _now(now)
    with guarded_session(session_id, now, turn_settings()) as session:
        current = session.current_player
        return {
            'session_id': session.id,
            'status': session.status,
            'current_user_id': current.user_id if current else None,
            'is_my_turn': bool(current and current.user_id == user_id),
            'turn_started_at': session.current_turn_started_at,
            'turn_time_remaining': session.turn_time_remaining(now),
            'turn_timer_seconds': session.turn_timer_seconds,
            'is_live_match': session.is_live_match,
            'turns_remaining': session.turns_remaining,
            'invalid_attempts': session.invalid_attempts,
            'poll_interval_seconds': poll_interval(session),
        }


def active_sessions(user_id: int, now: Optional[float] = None) -> list:
    now = _now(now)
    settings = turn_settings()
    summaries = []
    for candidate_id in [s.id for s in repository.sessions_for_user(user_id)]:
        with guarded_session(candidate_id, now, settings) as session:
            summaries.append(session.to_dict(include_moves=False, now=now))
    return summaries
