"""vendorsync: fill a project's vendor tree from pinned git and Mercurial sources."""
from __future__ import annotations

__version__ = "0.4.0"

__all__ = ["__version__"]
