"""
Hostplay Connections Module

Remote sessions over SSH, plus a local session for the control node.
"""

from hostplay.connections.base import Connection, ConnectionFactory, RunResult, create_connection
from hostplay.connections.local import LocalConnection

__all__ = [
    'Connection',
    'ConnectionFactory',
    'RunResult',
    'LocalConnection',
    'create_connection',
]
