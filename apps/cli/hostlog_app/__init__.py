"""hostlog command line application."""
