"""Lifecycle exceptions."""


class LifecycleError(Exception):
    """Base exception for lifecycle operations."""
    pass


class TransactionNotFoundError(LifecycleError):
    """No stored transaction has the given id."""

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction not found: {transaction_id}")


class MissingDefaultError(LifecycleError):
    """A seeded sentinel ("Income", "Other") is missing from the state."""
    pass


class FormBusyError(LifecycleError):
    """A form is still categorizing its previous submission."""
    pass
