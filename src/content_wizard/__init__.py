"""content-wizard: trending topic → script → derived assets, powered by Gemini."""

__version__ = "0.1.0"
