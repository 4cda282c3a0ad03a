"""
Utility modules for the binlog relay.
"""

from binlog_relay.utils.logging import configure_logging

__all__ = ["configure_logging"]
