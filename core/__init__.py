"""
Lightweight package marker for cross-cutting helpers (structured logging).
"""
