"""
FastAPI REST API for the In-N-Out-Books catalog.

This module provides:
- Book CRUD endpoints over an in-memory collection
- User registration and login with bcrypt-hashed passwords
- Password reset guarded by security-question answers
"""
