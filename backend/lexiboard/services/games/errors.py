"""Caller-facing errors raised by the game services.

Every error carries a stable ``code`` (surfaced verbatim to clients) and the
HTTP status the API answers with. None of them are retried by the services.
"""


class GameError(Exception):
    code = 'GameError'
    status = 400
    default_message = 'Request could not be applied'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self):
        return {'error': self.code, 'message': self.message}


class InvalidRequest(GameError):
    code = 'InvalidRequest'
    default_message = 'Invalid request'


class InvalidSelection(GameError):
    code = 'InvalidSelection'
    default_message = 'That tile path cannot be selected'


class TooShort(InvalidSelection):
    code = 'TooShort'
    default_message = 'Words must use at least 3 tiles'


class NonAdjacent(InvalidSelection):
    code = 'NonAdjacent'
    default_message = 'Each tile must touch the previous one'


class Repeated(InvalidSelection):
    code = 'Repeated'
    default_message = 'A tile cannot be used twice in one word'


class NotAWord(GameError):
    code = 'NotAWord'
    status = 422
    default_message = 'Not a valid word'

    def __init__(self, word, message=None):
        super().__init__(message or f'{word} is not a valid word')
        self.word = word
        # Set by the turn machine once the retry policy has been applied
        self.turn_consumed = False
        self.events = []

    def to_dict(self):
        payload = super().to_dict()
        payload['word'] = self.word
        payload['turn_consumed'] = self.turn_consumed
        return payload


class NotYourTurn(GameError):
    code = 'NotYourTurn'
    status = 409
    default_message = 'It is not your turn'


class SessionClosed(GameError):
    code = 'SessionClosed'
    status = 409
    default_message = 'This session has already finished'


class SessionFull(GameError):
    code = 'SessionFull'
    status = 409
    default_message = 'This session is full'


class InvalidCode(GameError):
    code = 'InvalidCode'
    status = 404
    default_message = 'Invalid invite code'


class AlreadyJoined(GameError):
    code = 'AlreadyJoined'
    status = 409
    default_message = 'You are already in this session'


class SessionNotActive(GameError):
    code = 'SessionNotActive'
    status = 409
    default_message = 'This session is not active'


class SessionNotFound(GameError):
    code = 'SessionNotFound'
    status = 404
    default_message = 'Session not found'


class BoardNotFound(GameError):
    code = 'BoardNotFound'
    status = 404
    default_message = 'Board not found'
