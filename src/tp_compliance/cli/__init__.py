"""
Command line interface for the TP Compliance engines.
"""
