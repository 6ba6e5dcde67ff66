"""
Worktrack - typed async clients for an issue tracker and an LLM completion API.

Both clients share one core: request construction with pluggable
authentication, typed response decoding, pagination traversal, partial-update
encoding and a retry policy for rate limits and transient network failures.
"""

__version__ = "0.3.0"
__author__ = "Worktrack contributors"
