"""Matchmaking and lobbies: solo start, random queue, private invite codes."""

import random
import string
import time
from typing import Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from lexiboard import db
from lexiboard.models import GameSession, STATUS_WAITING
from . import turns
from .catalog import build_board, load_template
from .errors import AlreadyJoined, InvalidCode, InvalidRequest, SessionFull, SessionNotActive
from .evaluator import GameMode
from .events import publish
from .gameplay import guarded_session, turn_settings
from .repository import MatchCriteria, repository

INVITE_ALPHABET = string.ascii_uppercase + string.digits


def generate_invite_code(length: int = 6) -> str:
    """Random short code; uniqueness is enforced by the database."""
    return ''.join(random.choices(INVITE_ALPHABET, k=length))


def _log_start(session, events) -> None:
    if any(event.name == 'session_started' for event in events):
        current_app.logger.info(f"[session-start] session={session.id} players={len(session.players)}")


def _validate_max_players(max_players) -> int:
    limit = int(current_app.config.get('MAX_PLAYERS_LIMIT', 4))
    try:
        value = int(max_players)
    except (TypeError, ValueError):
        raise InvalidRequest('max_players must be a number')
    if not 2 <= value <= limit:
        raise InvalidRequest(f'max_players must be between 2 and {limit}')
    return value


def _new_session(template, mode: GameMode, matchmaking_type: str, is_live_match: bool,
                 max_players: int, now: float, turn_limit: Optional[int] = None) -> GameSession:
    live = bool(is_live_match) and mode is GameMode.MULTIPLAYER
    session = GameSession(
        mode=mode.value,
        puzzle_mode=template.puzzle_mode,
        status=STATUS_WAITING,
        board_id=template.id,
        matchmaking_type=matchmaking_type,
        is_live_match=live,
        turn_timer_seconds=int(current_app.config.get('TURN_TIMER_SEC', 120)) if live else None,
        max_players=max_players,
        created_at=now,
    )
    session.board = build_board(template)
    win = template.win_spec
    session.win_spec = win
    if mode is GameMode.SOLO:
        session.turns_remaining = turn_limit if turn_limit is not None else win.turn_limit
    return session


def start_solo(user_id: int, board_id, turn_limit=None, now: Optional[float] = None) -> GameSession:
    now = time.time() if now is None else now
    template = load_template(board_id, GameMode.SOLO.value)
    if turn_limit is not None:
        try:
            turn_limit = int(turn_limit)
        except (TypeError, ValueError):
            raise InvalidRequest('turn_limit must be a number')
        if turn_limit < 1:
            raise InvalidRequest('turn_limit must be positive')
    session = _new_session(template, GameMode.SOLO, 'solo', False, 1, now, turn_limit)
    events = turns.seat_player(session, user_id, now, turn_settings())
    repository.save(session)
    current_app.logger.info(f"[session-create] session={session.id} mode=solo board={template.id} user={user_id}")
    _log_start(session, events)
    publish(session, events)
    return session


def join_random(user_id: int, board_id, is_live_match: bool, max_players, now: Optional[float] = None) -> GameSession:
    """Join the oldest open random session or open a new one.

    Candidates are a snapshot; each is re-checked under its lock before
    seating, and a candidate that filled up in the meantime is skipped.
    Two callers racing past an empty queue may both create a session.
    """
    now = time.time() if now is None else now
    max_players = _validate_max_players(max_players)
    template = load_template(board_id, GameMode.MULTIPLAYER.value)
    settings = turn_settings()
    criteria = MatchCriteria(board_id=template.id, is_live_match=bool(is_live_match), max_players=max_players)

    for candidate_id in [s.id for s in repository.find_open_random_sessions(criteria)]:
        with guarded_session(candidate_id, now, settings) as session:
            try:
                events = turns.seat_player(session, user_id, now, settings)
            except AlreadyJoined:
                return session
            except (SessionFull, SessionNotActive):
                current_app.logger.info(f"[join-retry] session={candidate_id} user={user_id} no longer open")
                continue
            repository.save(session)
            current_app.logger.info(
                f"[join] session={session.id} user={user_id} players={len(session.players)}/{session.max_players}"
            )
            _log_start(session, events)
            publish(session, events)
            return session

    session = _new_session(template, GameMode.MULTIPLAYER, 'random', is_live_match, max_players, now)
    events = turns.seat_player(session, user_id, now, settings)
    repository.save(session)
    current_app.logger.info(
        f"[session-create] session={session.id} mode=random board={template.id} live={session.is_live_match} user={user_id}"
    )
    publish(session, events)
    return session


def create_private_lobby(user_id: int, board_id, is_live_match: bool, max_players,
                         now: Optional[float] = None) -> GameSession:
    now = time.time() if now is None else now
    max_players = _validate_max_players(max_players)
    template = load_template(board_id, GameMode.MULTIPLAYER.value)
    settings = turn_settings()
    length = int(current_app.config.get('INVITE_CODE_LENGTH', 6))
    attempts = int(current_app.config.get('INVITE_CODE_ATTEMPTS', 8))

    for attempt in range(1, attempts + 1):
        session = _new_session(template, GameMode.MULTIPLAYER, 'private', is_live_match, max_players, now)
        session.invite_code = generate_invite_code(length)
        events = turns.seat_player(session, user_id, now, settings)
        db.session.add(session)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            current_app.logger.warning(f"[invite-code-collision] code={session.invite_code} attempt={attempt}")
            continue
        current_app.logger.info(
            f"[session-create] session={session.id} mode=private code={session.invite_code} user={user_id}"
        )
        publish(session, events)
        return session
    raise RuntimeError(f'could not allocate a unique invite code after {attempts} attempts')


def join_by_code(user_id: int, invite_code, now: Optional[float] = None) -> GameSession:
    now = time.time() if now is None else now
    if not invite_code or not str(invite_code).strip():
        raise InvalidRequest('invite_code is required')
    found = repository.find_by_invite_code(str(invite_code))
    if found is None:
        raise InvalidCode()
    settings = turn_settings()
    with guarded_session(found.id, now, settings) as session:
        events = turns.seat_player(session, user_id, now, settings)
        repository.save(session)
        current_app.logger.info(
            f"[join] session={session.id} user={user_id} code={session.invite_code} "
            f"players={len(session.players)}/{session.max_players}"
        )
        _log_start(session, events)
        publish(session, events)
        return session
