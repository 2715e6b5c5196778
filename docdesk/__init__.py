"""docdesk: session-scoped PDF utilities and document-grounded chat."""

__version__ = "0.1.0"
