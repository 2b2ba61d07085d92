"""gitwarden - keeps locally mirrored git repositories fresh."""

__app_name__ = "gitwarden"
__version__ = "0.1.0"
