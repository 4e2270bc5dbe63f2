"""Errors shared by the stages that talk to upstream services."""


class UpstreamError(RuntimeError):
    """Raised when the document store or the completion service fails.

    The message is safe to log but is never forwarded to API callers.
    """


__all__ = ["UpstreamError"]
