"""
Payment Relay.

Relays free-text payment requests typed into store channels on Slack to an
approval channel, persists them, and reports the reviewer's decision back to
the thread the request came from.
"""

__version__ = "2.1.0"

__all__ = ["__version__"]
