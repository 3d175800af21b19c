"""
Registrar - Database layer (Supabase).
"""

from registrar.db.client import get_client

__all__ = ["get_client"]
