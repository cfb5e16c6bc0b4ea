"""Core runtime helpers shared across searchdeck modules."""
