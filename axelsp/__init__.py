"""Axe Language Server client manager.

Locates or provisions the ``axels`` language server executable and supervises
a long-lived LSP session with it, routing server notifications to the log
output and to user-facing messages.
"""

__version__ = "0.1.0"
