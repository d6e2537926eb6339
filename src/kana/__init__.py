"""
Kana CLI Package
Local WordPress development environments managed on Docker
"""

__version__ = "0.1.0"
__author__ = "Kana Team"
__description__ = "CLI for running WordPress sites, plugins and themes in local Docker containers"

__all__ = [
    '__version__',
    '__author__',
    '__description__'
]
