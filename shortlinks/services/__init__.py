"""
Services module for business logic separation.

This module contains service classes that encapsulate business logic
(shortcode lifecycle, redirects and click recording, stats, expiry sweep,
geolocation), keeping it separate from API endpoints and database models.
"""
