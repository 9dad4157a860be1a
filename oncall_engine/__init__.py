"""
On-call resolution service: who is on call for a schedule at a given instant.
"""

__version__ = "1.0.0"
