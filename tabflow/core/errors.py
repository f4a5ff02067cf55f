"""Custom exceptions used across tabflow."""


class TabflowError(Exception):
    """Base error for the application."""


class ConfigError(TabflowError):
    """Configuration related error."""


class SchemaError(TabflowError):
    """Raised when records do not carry the fields a shape spec names."""


class AmbiguousCellError(TabflowError):
    """Raised when two different values map to the same grid cell."""

    def __init__(self, row_key: tuple, col_key: tuple, values: list[object]) -> None:
        super().__init__(
            f"ambiguous cell row={row_key!r} column={col_key!r}: "
            f"{len(values)} distinct values ({', '.join(repr(v) for v in values)}); "
            "aggregate the records before shaping"
        )
        self.row_key = row_key
        self.col_key = col_key
        self.values = values


class HeaderMismatchError(TabflowError):
    """Raised when header metadata disagrees with the computed grid shape."""


class ColumnSpecMismatchError(TabflowError):
    """Raised when a manual column spec disagrees with the table's column count."""

    def __init__(self, spec: str, declared: int | None, expected: int, detail: str | None = None) -> None:
        super().__init__(
            detail or f"column spec {spec!r} declares {declared} columns but the table has {expected}"
        )
        self.spec = spec
        self.declared = declared
        self.expected = expected


class NotFoundError(TabflowError):
    """Raised when a registry selection references an unknown fragment."""

    def __init__(self, missing: list[str], directory: str) -> None:
        super().__init__(f"fragments not registered in {directory}: {', '.join(missing)}")
        self.missing = missing
        self.directory = directory


class TemplateNotFoundError(TabflowError):
    """Raised when a document template cannot be resolved."""


class TemplateRenderError(TabflowError):
    """Raised when a resolved template fails to parse or render."""


class CompileWarning(UserWarning):
    """Issued when the external typesetter or previewer fails."""
