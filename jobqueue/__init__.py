"""
Persistent Job Queue

A multi-worker background job queue built on lease-based locking: workers race for
jobs with a single conditional update against a shared store, retry failures with
exponential backoff, and recover crashed workers' jobs once their lease expires.
"""

__version__ = "1.0.0"
