"""Session repository backed by Flask-SQLAlchemy.

``locked`` is the per-session mutual-exclusion scope every mutation runs
in: a process-local lock serializes threads of this worker and a
``SELECT ... FOR UPDATE`` row lock serializes workers sharing the database.
"""

from contextlib import contextmanager
from dataclasses import dataclass
import threading
from typing import List, Optional
import weakref

from sqlalchemy.orm import selectinload

from lexiboard import db
from lexiboard.models import GameSession, SessionPlayer, STATUS_ACTIVE, STATUS_WAITING
from .errors import SessionNotFound

_registry_lock = threading.Lock()
# Entries disappear once no caller holds the lock
_session_locks = weakref.WeakValueDictionary()


def _lock_for(session_id: int) -> threading.Lock:
    with _registry_lock:
        lock = _session_locks.get(session_id)
        if lock is None:
            lock = _session_locks[session_id] = threading.Lock()
        return lock


@dataclass(frozen=True)
class MatchCriteria:
    board_id: int
    is_live_match: bool
    max_players: int
    matchmaking_type: str = 'random'


class SessionRepository:
    def load(self, session_id: int, for_update: bool = False) -> GameSession:
        query = GameSession.query.options(
            selectinload(GameSession.players),
            selectinload(GameSession.moves),
        ).filter_by(id=session_id)
        if for_update:
            # Refresh rows already in the identity map with the locked state
            query = query.with_for_update().populate_existing()
        session = query.first()
        if session is None:
            raise SessionNotFound(f'Session {session_id} not found')
        return session

    def save(self, session: GameSession) -> None:
        db.session.add(session)
        db.session.commit()

    def find_open_random_sessions(self, criteria: MatchCriteria) -> List[GameSession]:
        candidates = GameSession.query.filter(
            GameSession.status.in_([STATUS_WAITING, STATUS_ACTIVE]),
            GameSession.mode == 'multiplayer',
            GameSession.matchmaking_type == criteria.matchmaking_type,
            GameSession.is_live_match == criteria.is_live_match,
            GameSession.max_players == criteria.max_players,
            GameSession.board_id == criteria.board_id,
        ).order_by(GameSession.created_at, GameSession.id).all()
        return [s for s in candidates if len(s.players) < s.max_players]

    def find_by_invite_code(self, code: str) -> Optional[GameSession]:
        return GameSession.query.filter_by(invite_code=code.strip().upper()).first()

    def sessions_for_user(self, user_id: int, include_completed: bool = False) -> List[GameSession]:
        query = GameSession.query.join(SessionPlayer).filter(SessionPlayer.user_id == user_id)
        if not include_completed:
            query = query.filter(GameSession.status.in_([STATUS_WAITING, STATUS_ACTIVE]))
        return query.order_by(GameSession.id).all()

    @contextmanager
    def locked(self, session_id: int):
        """Hold the session's lock and its row lock for the ``with`` block.

        Work the caller saved is already committed; whatever transaction is
        still open on exit (a read, an error) is rolled back so the row lock
        is released together with the process lock.
        """
        lock = _lock_for(session_id)
        with lock:
            try:
                yield self.load(session_id, for_update=True)
            finally:
                if db.session().in_transaction():
                    db.session.rollback()


repository = SessionRepository()
