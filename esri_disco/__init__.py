"""Discovery tool for ArcGIS/Esri REST map services."""

__version__ = "1.0.0"
