"""
Guide Circle

A structured, turn-based dialogue between two participants, facilitated by
an automated Guide.
"""

__version__ = "0.1.0"
