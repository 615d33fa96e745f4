from __future__ import annotations


class ChartSyncError(Exception):
    pass


class InvalidReferenceError(ChartSyncError):
    """A record points at something that does not exist or is not a valid tooth."""

    def __init__(self, entity_type: str, entity_id: object, detail: str) -> None:
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.detail = detail
        super().__init__(f"Invalid {entity_type} reference {entity_id!r}: {detail}")


class StoreError(ChartSyncError):
    pass
