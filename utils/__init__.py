"""
Lightweight package marker for internal utils (env readers).

Ensures `from utils import ...` imports resolve when the app is run
from the repo root (uvicorn, cli.py, pytest).
"""
