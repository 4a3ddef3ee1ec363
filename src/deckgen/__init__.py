"""
deckgen - turn a document into a slide deck with a remote language model
"""

__version__ = "0.1.0"
