"""Turn state machine for a single session.

``waiting -> active -> completed``. While active, ``current_turn_index``
says whose move is accepted. Functions here mutate a ``GameSession`` in
memory and return the events the change produced; committing and
publishing belong to the caller, which also holds the session lock.

Turn timeouts are lazy: ``check_timeout`` must run before any read or
mutation of a session so that an expired turn is forfeited first.
"""

from dataclasses import dataclass, field
import json
from typing import Any, Dict, List, Optional

from lexiboard.models import (
    Move, SessionPlayer, STATUS_ACTIVE, STATUS_COMPLETED, STATUS_WAITING,
    OUTCOME_ABANDONED, OUTCOME_LOST, OUTCOME_WON,
)
from .board import EffectSpec, PuzzleMode
from .errors import AlreadyJoined, NotAWord, NotYourTurn, SessionClosed, SessionFull, SessionNotActive
from .evaluator import GameMode, Verdict, evaluate, territory_leader
from .words import Resolution, resolve_word


@dataclass
class TurnEvent:
    name: str
    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass
class TurnSettings:
    min_players: int = 2
    retry_cap: int = 3
    solo_invalid_consumes_turn: bool = False
    abandon_after_timeout_rounds: int = 2
    async_abandon_hours: int = 0
    effect_spec: EffectSpec = field(default_factory=EffectSpec)

    @classmethod
    def from_config(cls, config) -> 'TurnSettings':
        return cls(
            min_players=int(config.get('MIN_PLAYERS', 2)),
            retry_cap=int(config.get('INVALID_WORD_RETRY_CAP', 3)),
            solo_invalid_consumes_turn=bool(config.get('SOLO_INVALID_WORD_CONSUMES_TURN', False)),
            abandon_after_timeout_rounds=int(config.get('ABANDON_AFTER_TIMEOUT_ROUNDS', 2)),
            async_abandon_hours=int(config.get('ASYNC_ABANDON_HOURS', 0)),
            effect_spec=EffectSpec.from_config(config.get('EFFECT_TIER_THRESHOLDS', '5,7')),
        )


@dataclass
class MoveOutcome:
    move: Move
    resolution: Resolution
    verdict: Verdict
    events: List[TurnEvent]


def required_players(session, settings: TurnSettings) -> int:
    if session.mode == GameMode.SOLO.value:
        return 1
    return max(1, min(settings.min_players, session.max_players))


def _set_turn(session, index: int, now: float) -> None:
    session.current_turn_index = index
    for i, player in enumerate(session.players):
        player.is_current_turn = i == index
    session.current_turn_started_at = now
    session.invalid_attempts = 0


def _turn_changed(session, reason: str) -> TurnEvent:
    current = session.players[session.current_turn_index]
    return TurnEvent('turn_changed', {
        'current_user_id': current.user_id,
        'turn_index': session.current_turn_index,
        'turn_started_at': session.current_turn_started_at,
        'reason': reason,
    })


def _advance_turn(session, now: float, reason: str) -> TurnEvent:
    _set_turn(session, (session.current_turn_index + 1) % len(session.players), now)
    return _turn_changed(session, reason)


def _complete(session, verdict: Optional[Verdict], now: float, winner_user_id=None) -> TurnEvent:
    if verdict is Verdict.WIN:
        session.outcome = OUTCOME_WON
    elif verdict is Verdict.LOSS:
        session.outcome = OUTCOME_LOST
    else:
        session.outcome = OUTCOME_ABANDONED
    session.status = STATUS_COMPLETED
    session.winner_user_id = winner_user_id
    session.completed_at = now
    for player in session.players:
        player.is_current_turn = False
    return TurnEvent('session_completed', {
        'outcome': session.outcome,
        'winner_user_id': winner_user_id,
        'final_scores': {str(p.user_id): p.score for p in session.players},
    })


def maybe_start(session, now: float, settings: TurnSettings) -> List[TurnEvent]:
    if session.status != STATUS_WAITING or len(session.players) < required_players(session, settings):
        return []
    session.status = STATUS_ACTIVE
    _set_turn(session, session.current_turn_index, now)
    return [TurnEvent('session_started', {'players': [p.user_id for p in session.players]}),
            _turn_changed(session, 'start')]


def seat_player(session, user_id, now: float, settings: TurnSettings) -> List[TurnEvent]:
    """Seat ``user_id``; occupancy is re-validated here, under the session lock."""
    if session.status == STATUS_COMPLETED:
        raise SessionNotActive()
    if session.player_for(user_id) is not None:
        raise AlreadyJoined()
    if len(session.players) >= session.max_players:
        raise SessionFull()
    first = not session.players
    session.players.append(SessionPlayer(
        user_id=user_id,
        seat=len(session.players),
        score=0,
        is_current_turn=first,
        joined_at=now,
    ))
    if first:
        session.current_turn_index = 0
    events = [TurnEvent('player_joined', {'user_id': user_id, 'seat': len(session.players) - 1})]
    return events + maybe_start(session, now, settings)


def check_timeout(session, now: float, settings: TurnSettings) -> List[TurnEvent]:
    """Forfeit an expired turn. Mandatory before every read and mutation."""
    if session.status != STATUS_ACTIVE or session.mode != GameMode.MULTIPLAYER.value:
        return []
    started = session.current_turn_started_at
    if started is None:
        return []
    elapsed = now - started
    if not session.is_live_match:
        if settings.async_abandon_hours > 0 and elapsed > settings.async_abandon_hours * 3600:
            return [_complete(session, None, now)]
        return []
    if not session.turn_timer_seconds or elapsed <= session.turn_timer_seconds:
        return []
    forfeited = session.players[session.current_turn_index]
    session.consecutive_timeouts += 1
    events = [TurnEvent('turn_forfeited', {'user_id': forfeited.user_id, 'elapsed': elapsed})]
    limit = settings.abandon_after_timeout_rounds * len(session.players)
    if limit and session.consecutive_timeouts >= limit:
        events.append(_complete(session, None, now))
        return events
    events.append(_advance_turn(session, now, 'timeout'))
    return events


def _penalize_invalid_word(session, player, settings: TurnSettings, now: float) -> List[TurnEvent]:
    """Apply the invalid-word policy; returns events when the turn is consumed."""
    if session.mode == GameMode.MULTIPLAYER.value:
        session.invalid_attempts += 1
        if session.invalid_attempts < settings.retry_cap:
            return []
        return [_advance_turn(session, now, 'invalid_words')]
    if not settings.solo_invalid_consumes_turn:
        return []
    events = [TurnEvent('turn_consumed', {'user_id': player.user_id})]
    if session.turns_remaining is not None:
        session.turns_remaining = max(0, session.turns_remaining - 1)
        verdict = evaluate(session.board, session.puzzle_mode, session.win_spec, player.score,
                           len(session.moves), session.mode, session.turns_remaining)
        if verdict is not Verdict.PLAYING:
            events.append(_complete(session, verdict, now, player.user_id if verdict is Verdict.WIN else None))
    return events


def submit_move(session, user_id, positions, is_valid_word, score_fn, now: float,
                settings: TurnSettings) -> MoveOutcome:
    if session.status == STATUS_COMPLETED:
        raise SessionClosed()
    if session.status != STATUS_ACTIVE:
        raise SessionNotActive('Waiting for more players to join')
    player = session.player_for(user_id)
    if player is None or not player.is_current_turn:
        raise NotYourTurn()

    board = session.board
    try:
        resolution = resolve_word(board, positions, is_valid_word, score_fn, session.puzzle_mode,
                                  settings.effect_spec, player_id=user_id)
    except NotAWord as exc:
        exc.events = _penalize_invalid_word(session, player, settings, now)
        exc.turn_consumed = bool(exc.events)
        raise

    turn_index = session.current_turn_index
    session.board = resolution.board
    player.score += resolution.score
    move = Move(
        sequence=len(session.moves) + 1,
        user_id=user_id,
        word=resolution.word,
        positions=json.dumps([list(p) for p in resolution.positions]),
        score_awarded=resolution.score,
        turn_index=turn_index,
        effects=json.dumps([e.to_dict() for e in resolution.effects]),
        created_at=now,
    )
    session.moves.append(move)
    session.invalid_attempts = 0
    session.consecutive_timeouts = 0

    solo = session.mode == GameMode.SOLO.value
    if solo and session.turns_remaining is not None:
        session.turns_remaining = max(0, session.turns_remaining - 1)

    events = [TurnEvent('move_applied', {
        'user_id': user_id,
        'word': resolution.word,
        'score': resolution.score,
        'sequence': move.sequence,
    })]
    if resolution.effects:
        events.append(TurnEvent('effect_triggered', {
            'user_id': user_id,
            'effects': [e.to_dict() for e in resolution.effects],
        }))

    verdict = evaluate(resolution.board, session.puzzle_mode, session.win_spec, player.score,
                       len(session.moves), session.mode, session.turns_remaining)
    if verdict is Verdict.WIN:
        winner = user_id
        if session.puzzle_mode == PuzzleMode.TERRITORY_CONTROL.value:
            winner = territory_leader(resolution.board)
        events.append(_complete(session, verdict, now, winner))
    elif verdict is Verdict.LOSS:
        events.append(_complete(session, verdict, now))
    elif solo:
        session.current_turn_started_at = now
    else:
        events.append(_advance_turn(session, now, 'move'))
    return MoveOutcome(move=move, resolution=resolution, verdict=verdict, events=events)
