"""
utils/ - Shared Utilities
=========================
Logging setup and the exception hierarchy used by every other layer.
"""
