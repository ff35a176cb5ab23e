"""
GED document-management service client.

A thin, single-session SDK: authenticate once with the API key, then manage
users, profiles and documents through one token-authenticated request
pipeline.
"""

__version__ = "0.1.0"
