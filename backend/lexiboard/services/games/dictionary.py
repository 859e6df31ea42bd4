"""Default word oracle and scoring function.

Both are collaborators of the game services and can be swapped per call;
these defaults keep a standalone server playable.
"""

from flask import current_app

from .board import MIN_PATH_LENGTH

LETTER_VALUES = {
    'A': 1, 'B': 3, 'C': 3, 'D': 2, 'E': 1, 'F': 4, 'G': 2, 'H': 4, 'I': 1, 'J': 8,
    'K': 5, 'L': 1, 'M': 3, 'N': 1, 'O': 1, 'P': 3, 'Q': 10, 'R': 1, 'S': 1, 'T': 1,
    'U': 1, 'V': 4, 'W': 4, 'X': 8, 'Y': 4, 'Z': 10,
}
# (minimum length, bonus), longest first
LENGTH_BONUSES = ((7, 150), (5, 50))


class WordList:
    def __init__(self, words=()):
        self._words = set()
        for word in words:
            word = word.strip().upper()
            if len(word) >= MIN_PATH_LENGTH and word.isalpha():
                self._words.add(word)

    @classmethod
    def from_path(cls, path):
        with open(path, encoding='utf-8') as fh:
            return cls(fh)

    def __contains__(self, word):
        return word.upper() in self._words

    def __len__(self):
        return len(self._words)

    def is_valid_word(self, word: str) -> bool:
        return word in self


def letter_score(word: str, path=None, board=None) -> int:
    base = 10 * sum(LETTER_VALUES.get(ch, 1) for ch in word.upper())
    for length, bonus in LENGTH_BONUSES:
        if len(word) >= length:
            return base + bonus
    return base


def get_word_list() -> WordList:
    """The app-wide word list, loaded once from ``WORD_LIST_PATH``."""
    words = current_app.extensions.get('lexiboard.words')
    if words is None:
        words = WordList.from_path(current_app.config['WORD_LIST_PATH'])
        current_app.extensions['lexiboard.words'] = words
        current_app.logger.info(f"[word-list] loaded {len(words)} words from {current_app.config['WORD_LIST_PATH']}")
    return words
