class DataAccessError(RuntimeError):
    """A read or write against the draft database failed."""
