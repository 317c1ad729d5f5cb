"""
Error taxonomy for Return&Reward.

Every failure the session core can surface derives from ReturnRewardError
and carries a stable `code` used by the WebSocket protocol.
"""

from typing import Any, Dict, List, Optional


class ReturnRewardError(Exception):
    """Base exception for all application errors"""

    code = "error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class InputInvalid(ReturnRewardError):
    """A required field is empty or malformed. Never reaches a store."""

    code = "input_invalid"

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message, {"field": field})


class ItemNotFound(ReturnRewardError):
    code = "item_not_found"

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"No item found with ID: {identifier}", {"identifier": identifier})


class SelfScanRejected(ReturnRewardError):
    """Informational: the scanned item belongs to the scanner."""

    code = "self_scan"

    def __init__(self, item):
        self.item = item
        super().__init__("This is your own registered item.", {"item_id": item.id})


class OwnerProfileUnavailable(ReturnRewardError):
    code = "owner_profile_unavailable"

    def __init__(self, item):
        self.item = item
        super().__init__(
            "Item found, but owner profile is missing or inaccessible.",
            {"item_id": item.id, "owner_id": item.owner_id},
        )


class StoreUnavailable(ReturnRewardError):
    """A store read or write failed (network, expired identity, permission denial)."""

    code = "store_unavailable"

    def __init__(self, operation: str, cause: Optional[BaseException] = None, message: Optional[str] = None):
        self.operation = operation
        self.cause = cause
        text = message or f"Failed to {operation}. Please try again."
        super().__init__(text, {"operation": operation})


class ConfigurationMissing(ReturnRewardError):
    code = "configuration_missing"

    def __init__(self, missing: List[str]):
        self.missing = list(missing)
        super().__init__(
            "App configuration is missing. Login is disabled.",
            {"missing": self.missing},
        )


class TransitionRejected(ReturnRewardError):
    """The current view state or item status does not allow the action."""

    code = "transition_rejected"
