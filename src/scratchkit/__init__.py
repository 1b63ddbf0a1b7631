"""
scratchkit - feature registry tooling for ScratchTools-style projects.
"""

__version__ = "0.3.0"
