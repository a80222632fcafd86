"""Test utilities for perch applications::

    from perch.testing import TestClient
"""

from perch.testing.client import TestClient, call_lifespan

__all__ = ["TestClient", "call_lifespan"]
