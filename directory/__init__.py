"""Directory resource service: Accounts, Groups and Roles as hypermedia REST resources."""

__version__ = "1.0.0"
