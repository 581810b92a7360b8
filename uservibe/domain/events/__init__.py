"""Domain Events.

Lightweight records describing what happened while resolving subjects,
published on an in-process dispatcher.
"""
