# backend/lessonbook/services/__init__.py
"""
Service layer for Lessonbook.

Services own transaction boundaries and business rules; repositories
only perform data access.
"""
