"""Devocional Bot - scheduled devotional delivery over a paired messaging session."""

__version__ = "0.1.0"
