"""GeoComply — geolocation validation, repair and export for supply-chain due diligence.

One-liner API::

    import geocomply

    geocomply.validate("plots.geojson")
    geocomply.fix("plots.geojson", "fixed.geojson")
    geocomply.export("places.json", "export.zip", convert_small_to_points=True)
"""

__version__ = "1.0.0"

from geocomply.api import export, fix, load_collection, load_records, validate

__all__ = ["validate", "fix", "export", "load_collection", "load_records", "__version__"]
