"""Configuration — load, validate, and resolve the desired-state document.

Values resolve with precedence env > yaml > default. Loading failures are
fatal at startup and surface as ``ConfigError``.
"""
