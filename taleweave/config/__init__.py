"""
Game configuration access.
"""
