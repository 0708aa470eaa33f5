# app/models/__init__.py
"""
Database models module initialization.
Exports all database models for convenient imports throughout the application.

Models exported:
- User: User account and authentication model
- Role: Enumeration of the roles a user can hold
"""
from .user import User, Role
