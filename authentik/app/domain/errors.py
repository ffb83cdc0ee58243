from __future__ import annotations


class AuthentikError(Exception):
    pass


class SuggestionNotFoundError(AuthentikError):
    def __init__(self, suggestion_id: str):
        super().__init__(f"Suggestion not found: {suggestion_id}")
        self.suggestion_id = suggestion_id


class InvalidTransitionError(AuthentikError):
    def __init__(self, suggestion_id: str, from_status: str, action: str):
        super().__init__(f"Cannot {action} suggestion {suggestion_id} in status {from_status}")
        self.suggestion_id = suggestion_id
        self.from_status = from_status
        self.action = action


class RepositoryError(AuthentikError):
    def __init__(self, operation: str, reason: str):
        super().__init__(f"Repository error during {operation}: {reason}")
        self.operation = operation
        self.reason = reason


class StorageError(AuthentikError):
    pass
