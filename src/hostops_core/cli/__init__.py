"""hostops command line interface."""
