"""
Transport layer.  The protocol engine talks to the server through an
object satisfying SyncIOProtocol; SyncIO is the default one, based on
requests.
"""

from .base import SyncIOProtocol
from .sync import SyncIO

__all__ = ["SyncIOProtocol", "SyncIO"]
