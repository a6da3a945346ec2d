# This project was developed with assistance from AI tools.
"""Site navigator assistant -- query classification and throttling API."""

__version__ = "0.1.0"
