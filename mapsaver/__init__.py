"""
Static Map Saver.

Fetches place records from Airtable, resolves their coordinates and saves
MapBox static map images for each place to local disk.
"""

__version__ = "0.1.0"
