"""
EntityForge Custom Exceptions

This module defines custom exception classes used throughout EntityForge.
"""


class EntityForgeError(Exception):
    """Base exception for all EntityForge errors."""
    pass


class StatementParseError(EntityForgeError):
    """
    Raised when a recognized DDL statement cannot be turned into model objects.

    The model assembler catches it per statement, so it never escapes
    ``parse_sql``.

    Attributes:
        statement: The SQL statement that failed to parse
        reason: Description of why parsing failed
    """
    def __init__(self, statement: str, reason: str = "Failed to parse statement"):
        self.statement = statement
        self.reason = reason
        # Truncate long statements for readability
        display_stmt = statement[:100] + "..." if len(statement) > 100 else statement
        super().__init__(f"{reason}: {display_stmt}")


class ModelFormatError(EntityForgeError):
    """Raised when a serialized model document is missing required keys."""
    pass
