"""
Session state lookups.
"""

from sessionbind.session.oracle import SessionStateOracle, parse_state

__all__ = ["SessionStateOracle", "parse_state"]
