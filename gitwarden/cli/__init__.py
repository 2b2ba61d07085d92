"""CLI command modules for gitwarden."""
