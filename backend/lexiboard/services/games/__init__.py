"""Game domain services: board, word resolution, puzzle evaluation, turns
and matchmaking.

The board, words and evaluator modules are pure and know nothing about
Flask or the database. Turns, matchmaking and gameplay operate on the
session models and are imported by HTTP routes and socket handlers,
keeping transport concerns separated from core game mechanics.
"""
