class PortNotFoundError(RuntimeError):
    """Raised when no usable serial port could be found."""
    pass
