"""searchdeck: search-engine launcher configuration management.

Export, import, validate and merge the engine/preference/history state
of a multi-engine search launcher.
"""

__version__ = "1.0.0"
