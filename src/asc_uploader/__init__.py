"""
asc_uploader — build submission client for the App Store content-delivery backend.

Mints ES256 bearer tokens from an API key, negotiates a legacy session for the
JSON-RPC surface, resolves an app's numeric id from its bundle identifier,
registers a build and uploads the package in checksummed chunks.

Built on the Railway-Oriented Programming (ROP) framework for
explicit, composable, functional error handling.
"""

__version__ = "0.1.0"
