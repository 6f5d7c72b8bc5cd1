"""
Account service: registration, login/logout and rotating refresh tokens.
"""

__version__ = "1.0.0"
