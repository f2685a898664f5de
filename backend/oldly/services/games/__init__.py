"""Game session domain services: scoring, turn order and session lifecycle.

This package holds the game logic imported by the HTTP blueprints and the
CLI, keeping request parsing and JSON shaping out of the rules for
starting, scoring and finishing a session.
"""
