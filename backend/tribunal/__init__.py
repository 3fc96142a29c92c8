"""
Tribunal: moderation, sanction and appeal lifecycle engine.
"""
__version__ = "1.0.0"
