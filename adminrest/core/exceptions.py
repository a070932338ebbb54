class DomainError(Exception):
    def __init__(self, code: str, message: str, details: dict | None = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_errors(self) -> dict:
        """Render the ``errors`` member of an error response body."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
            }
        }


class NotFoundError(DomainError):
    def __init__(self, entity: str, message: str | None = None, details: dict | None = None):
        code = f"NF_{entity.upper()}_001"
        msg = message or f"{entity} not found"
        super().__init__(code, msg, details)


class ValidationError(DomainError):
    def __init__(self, field: str, message: str, details: dict | None = None):
        code = f"VAL_{field.upper()}_001"
        msg = f"Validation failed for {field}: {message}"
        super().__init__(code, msg, details or {"field": field})


class InvalidFilterOperatorError(DomainError):
    def __init__(self, operator: str, field: str | None = None):
        super().__init__(
            "FLT_OPERATOR_001",
            f'Unknown filter operator "{operator}"',
            {"operator": operator, "field": field},
        )


class InvalidFilterFieldError(DomainError):
    def __init__(self, field: str, resource: str):
        super().__init__(
            "FLT_FIELD_001",
            f'Cannot filter {resource} on unknown field "{field}"',
            {"field": field, "resource": resource},
        )


class InvalidFilterValueError(DomainError):
    def __init__(self, field: str, value, reason: str):
        super().__init__(
            "FLT_VALUE_001",
            f'Invalid value {value!r} for filter on "{field}": {reason}',
            {"field": field},
        )


class CsvHeaderError(DomainError):
    def __init__(self, header: str):
        super().__init__(
            "CSV_HEADER_001",
            f'The header "{header}" does not match any properties in the schema',
            {"header": header},
        )


class StructuredCellError(DomainError):
    def __init__(self, header: str, row: int):
        super().__init__(
            "CSV_CELL_001",
            "Error parsing array",
            {"header": header, "row": row},
        )


class RowRejectedError(DomainError):
    """A row the database refused, without the statement or its parameters."""

    def __init__(self, reason: str, details: dict | None = None):
        super().__init__("CSV_ROW_001", reason, details)


class ImportFailedError(DomainError):
    """Aggregated per-row failures of a CSV import."""

    def __init__(self, row_errors: dict[int, Exception], display_limit: int = 5):
        self.row_errors = dict(sorted(row_errors.items()))
        self.display_limit = display_limit
        super().__init__(
            "CSV_IMPORT_001",
            f"{len(row_errors)} rows failed to import",
            {"failed_rows": list(self.row_errors)},
        )

    def to_errors(self) -> dict:
        errors = {}
        for row, error in list(self.row_errors.items())[: self.display_limit]:
            reason = error.message if isinstance(error, DomainError) else str(error)
            errors[f"error{row}"] = {
                "message": f"Unable to add row: {row} with error: {reason}"
            }

        excess = len(self.row_errors) - self.display_limit
        if excess > 0:
            errors["excess"] = {"message": f"And {excess} more errors"}
        return errors


class UpstreamError(DomainError):
    def __init__(self, message: str = "An unknown error occured. Please try again.", details: dict | None = None):
        super().__init__("UPSTREAM_001", message, details)


class AuthenticationError(DomainError):
    def __init__(self, message: str, code: str = "AUTH_001", details: dict | None = None):
        super().__init__(code, message, details)


class AuthorizationError(DomainError):
    def __init__(self, message: str, code: str = "AUTH_006", details: dict | None = None):
        super().__init__(code, message, details)
