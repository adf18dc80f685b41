"""
Vercel serverless function entry point for the setup API.
"""
import sys
import os

# Add the project root to the Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.api.main import app  # noqa: E402

__all__ = ["app"]
