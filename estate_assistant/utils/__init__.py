"""
Logging, rate limiting and HTTP middleware helpers.
"""
