"""Protocol data sources."""
