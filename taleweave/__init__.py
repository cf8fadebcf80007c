"""
Taleweave - client-side game engine for collaborative "exquisite corpse" storytelling.
"""

__version__ = "0.1.0"
