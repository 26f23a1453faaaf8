"""
Avatar Booth
Photo-to-avatar camera booth backend.
"""

__version__ = "0.1.0"
