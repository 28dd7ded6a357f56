"""
RPG Library: finds RPG Maker MV/MZ, TyranoBuilder and legacy RPG Maker games
in a folder tree and strips the bundled NW.js runtime out of web games.
"""

__version__ = "1.0.0"
