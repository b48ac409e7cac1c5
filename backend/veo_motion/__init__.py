"""Veo Motion: still photo to seamless looping video via Veo."""

__version__ = "0.1.0"
