"""fileversions - content-addressed version store for individual files.

Registers snapshots of a file under a comment, stores each distinct
content once, and keeps an append-only log of versions.
"""

__version__ = "1.0.0"
