"""Product image compositor: region detection, rotation search, placement and rendering."""
