"""Generate-name conformance checks for Knative Serving."""

__version__ = "1.0.0"
