"""
SecureBank Core

Account funding backend: validated signup with cookie sessions, and deposits
kept in exact Decimal balances.
"""

__version__ = "1.0.0"
