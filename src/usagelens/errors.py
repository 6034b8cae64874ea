class AnalysisError(Exception):
    """
    base class for every failure the analysis core surfaces
    to its caller.
    """


class ParseError(AnalysisError):
    """
    raised when the usage log is structurally invalid: no header
    line, a header missing required columns, or a row whose date
    cannot be read.
    """

    def __init__(self, message: "str", line: "int | None" = None) -> "None":
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)
        self.line = line


class EmptyDatasetError(AnalysisError):
    """
    raised when the usage log has a header but no data rows.
    """
