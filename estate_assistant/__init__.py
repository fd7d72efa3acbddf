"""
Estate AI Assistant - conversational backend for a real estate brokerage.
"""

__version__ = "2.0.0"
