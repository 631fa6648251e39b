"""Text completion service client."""

from .client import CompletionClient, CompletionError

__all__ = [
    'CompletionClient',
    'CompletionError',
]
