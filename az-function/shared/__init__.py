"""Shared utilities for the inventory relay Azure Functions.

Currently exposes:
    forward_action - relay of {action, payload} envelopes to the Apps Script backend.
    load_client_config - browser configuration with read-or-create user id.
"""

from .client_config import load_client_config  # re-export for convenience
from .common_proxy import forward_action

__all__ = ["forward_action", "load_client_config"]
