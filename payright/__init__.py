"""
PayRight - Source Package

A personal subscription manager: AI-detected recurring charges,
a virtual wallet to pay them from, and simple spending analytics.

DESIGN PRINCIPLES:
1. The model parses text, it never owns data
2. Fail early, surface the message
3. Every mutation leaves a transaction behind
4. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "PayRight Team"
