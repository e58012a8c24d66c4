"""Forum API client and async helpers shared by the CLI and the import engine."""

from .async_utils import pause, run_sync
from .client import NodeBBClient

__all__ = ["NodeBBClient", "pause", "run_sync"]
