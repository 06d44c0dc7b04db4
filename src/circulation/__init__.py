"""circulation - a library lending core.

Tracks a catalog of single-copy books and which user holds which book,
guaranteeing one holder per book even under concurrent requests.
"""

__version__ = "0.1.0"
