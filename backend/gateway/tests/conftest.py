"""Shared fixtures for gateway tests."""

import os

# AuthSettings requires AUTH_TOKEN_SECRET. Set a test default
# before any AuthSettings is instantiated.
os.environ.setdefault("AUTH_TOKEN_SECRET", "test-secret")
