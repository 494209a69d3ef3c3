"""Build option parsing, cache usage printing, home-directory state and editor plugin handling."""

__version__ = "0.1.0"