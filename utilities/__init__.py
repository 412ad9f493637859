"""
Shared helpers for the In-N-Out-Books service.
"""
