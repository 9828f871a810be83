"""Page objects for the published reports landing page."""
