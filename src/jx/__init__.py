"""jx: Reproducible dependency resolution and artifact caching for Java projects."""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Written into every lock file so readers can tell which tool produced it.
_PRODUCT_ID = "jx"
