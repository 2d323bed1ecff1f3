"""
BisnisPintar: stock, margin and capital tracking for small businesses, with a
Gemini-backed business advisor.
"""

__version__ = "0.1.0"
