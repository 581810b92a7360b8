"""Subject Cache Implementation.

Provides concrete implementations of the SubjectCache interface: a
disk-backed store (diskcache) and an in-memory store, both with lazy TTL
expiry and a private key namespace.
Bounded Context: Cache Management
"""
