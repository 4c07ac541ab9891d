"""
polygot - extract user-visible strings from JSX/TSX/HTML sources and
translate them into flat locale JSON files with an LLM.
"""

__version__ = "1.0.0"
