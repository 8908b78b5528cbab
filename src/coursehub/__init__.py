"""coursehub: accounts, sessions and remember-me login for the course marketplace."""

__version__ = "0.1.0"
