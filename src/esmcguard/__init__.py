"""esmc-guard: License validation and package integrity verification for ESMC."""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"
