"""KrakenClip: toolkit for taxonomic classification reports, logs and reads."""

__version__ = "0.2.0"
