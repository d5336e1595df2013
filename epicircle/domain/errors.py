class StoreError(Exception):
    """Raised when the key-value store cannot be read or written, or holds a corrupt blob."""
