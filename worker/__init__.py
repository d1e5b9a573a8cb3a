"""
Retry helpers shared by the API clients.

Exports calculate_delay for exponential backoff with full jitter.
"""

from worker.backoff import calculate_delay

__all__ = ['calculate_delay']
