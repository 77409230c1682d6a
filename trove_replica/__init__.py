"""Read-side replica of the Aerospacer sorted trove list."""

__version__ = "0.1.0"
