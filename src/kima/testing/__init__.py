"""Test utilities for kima applications::

    from kima.testing import TestClient
"""

from kima.testing.client import TestClient

__all__ = ["TestClient"]
