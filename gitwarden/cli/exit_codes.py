"""Standard exit codes for gitwarden.

Codes follow common Unix conventions where possible; gitwarden-specific
codes occupy 2-9.
"""


class ExitCode:
    """Exit codes returned by the gitwarden CLI."""

    SUCCESS = 0
    GENERAL_ERROR = 1

    CONFIGURATION_ERROR = 2
    DATABASE_ERROR = 3
    GIT_ERROR = 4
    INVALID_ARGUMENT = 7
    NOT_FOUND = 8

    # 128 + SIGINT
    CANCELLED = 130

    @classmethod
    def get_name(cls, code: int) -> str:
        """Get the symbolic name of an exit code.

        Args:
            code: The exit code value

        Returns:
            Name such as "NOT_FOUND", or "UNKNOWN(<code>)"
        """
        names = {
            value: name
            for name, value in vars(cls).items()
            if name.isupper() and isinstance(value, int)
        }
        return names.get(code, f"UNKNOWN({code})")
