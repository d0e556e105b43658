"""Path-prefix front door for static sites and HTTP backends."""

__version__ = "0.1.0"
