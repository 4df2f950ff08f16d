"""
vault-export: Obsidian notes → JSON collections, plus book cover maintenance
"""

__version__ = "0.1.0"
