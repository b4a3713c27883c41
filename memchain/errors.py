"""
memchain Errors - Exception taxonomy for the checkpoint/streaming core

- ConfigurationError: an operation needs a collaborator that was never set
- GenerationError: the generation collaborator failed
- StoreError: the checkpoint store failed a read or a write

An empty assistant response is not an error; the turn is simply not persisted.
"""


class MemChainError(Exception):
    """Base class for all memchain errors"""
    pass


class ConfigurationError(MemChainError):
    """Raised when an operation requires configuration that is missing"""
    pass


class GenerationError(MemChainError):
    """Raised when the generation collaborator fails (backend, tool or output error)"""
    pass


class StoreError(MemChainError):
    """
    Raised when the checkpoint store fails a get or put.

    Attributes:
        thread_id: Thread the failing operation targeted
        operation: "get" or "put"
    """

    def __init__(self, message: str, thread_id: str = None, operation: str = None):
        super().__init__(message)
        self.thread_id = thread_id
        self.operation = operation
