"""
MapFlam: compose, export and save styled map images.

Subpackages:
- composition: Composition data model, palette and format constants
- geocoding: Place search with caching, fallback and coordinate parsing
- capture: Fixed-size PNG export and thumbnail capture of a live map
- storage: Bounded, self-expiring history of saved compositions
- config: Environment configuration and logging
"""

__version__ = "1.0.0"
__author__ = "MapFlam Team"
