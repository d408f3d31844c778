"""
Correlation id generation.

A correlation id links one start-translation request to the push
channel that reports its progress. Ids are never reused.
"""

import uuid


class CorrelationIdGenerator:
    """Produces UUID4 tokens and counts how many were handed out."""

    def __init__(self):
        self.issued = 0

    def next(self) -> str:
        """Return a fresh correlation id."""
        self.issued += 1
        return str(uuid.uuid4())


_default_generator = CorrelationIdGenerator()


def generate_correlation_id() -> str:
    """Fresh id from the process-wide generator."""
    return _default_generator.next()
