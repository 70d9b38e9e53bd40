"""Administrative backend for documents and their asynchronous analyses."""

__version__ = "0.1.0"
