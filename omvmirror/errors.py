"""Exceptions raised while mirroring a case."""

from __future__ import annotations


class MirrorError(Exception):
    """Base class for all omvmirror errors."""


class ValidationError(MirrorError, ValueError):
    """Raised for a malformed case id."""


class FetchError(MirrorError):
    """A request to the resource service failed.

    ``status`` is ``None`` when no response was received at all (transport failure).
    """

    def __init__(self, url: str, status: int | None, body: str = "") -> None:
        self.url = url
        self.status = status
        self.body = body
        if status is None:
            message = f"Fetch failed for {url}: {body}"
        else:
            message = f"Fetch failed for {url}: request error {status}: {body}"
        super().__init__(message)


class UnimplementedNodeError(MirrorError):
    """A record has a kind or shape the walker does not know how to traverse."""

    def __init__(self, kind: str, detail: str) -> None:
        self.kind = kind
        self.detail = detail
        super().__init__(f"unimplemented {kind} node: {detail}")


class PathCollisionError(MirrorError):
    """Two different remote files resolve to the same local path."""

    def __init__(self, path: str, first_uuid: str, second_uuid: str) -> None:
        self.path = path
        self.first_uuid = first_uuid
        self.second_uuid = second_uuid
        super().__init__(f"{path} is claimed by both {first_uuid} and {second_uuid}")
