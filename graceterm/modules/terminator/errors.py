class InvalidArgumentError(ValueError):
    pass

class ListenerCloseError(Exception):
    pass

class DeadlineExceededError(Exception):
    """Raised by the deadline timer. Never leaves ServerTerminator."""
    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Shutdown timeout of {timeout} seconds exceeded")
