"""
Utilities Package.

Shared console and logging helpers.
"""
