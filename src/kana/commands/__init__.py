"""
Kana Commands Package
Site lifecycle commands
"""

from . import site

__all__ = ['site']
