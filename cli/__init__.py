"""Site Unraveler command-line interface."""
