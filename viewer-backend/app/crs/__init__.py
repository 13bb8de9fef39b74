"""CRS (Coordinate Reference System) utilities.

Modules:
 - classifier: geographic / projected-likely / indeterminate magnitude heuristic
 - anchors: reference-point interpolation from projected to geographic
 - projection: remote GeometryServer client and CRS code normalization
 - epsg_catalog: static horizontal/vertical/geoid tables and CRS -> location
 - search: remote free-text CRS search
 - catalog: CRSCatalogService over the static tables plus remote search
 - diagnostics: attempt-trail summaries for logs and reports
"""

__all__ = [
    "anchors",
    "catalog",
    "classifier",
    "diagnostics",
    "epsg_catalog",
    "projection",
    "search",
]
