"""Indian transfer pricing compliance engines: thin capitalization, comparables, forex, disputes and penalties."""

__version__ = "0.1.0"
