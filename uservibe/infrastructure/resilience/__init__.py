"""API Resilience Implementations.

Contains the shared rate-limit pause, request coalescing and the per-subject
retry state machine with bounded exponential backoff.
Bounded Context: API Resilience
"""
