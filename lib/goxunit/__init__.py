"""Convert `go test` and gocheck console output into xUnit XML reports."""

__version__ = "0.1.0"
