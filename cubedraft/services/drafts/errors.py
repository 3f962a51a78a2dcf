class DraftError(Exception):
    """A draft action was rejected; carries the HTTP status to answer with."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def to_dict(self):
        return {'error': self.message}


class NotHost(DraftError):
    def __init__(self, message: str = 'Only the host can do that'):
        super().__init__(message, 403)


class SessionNotFound(DraftError):
    def __init__(self, room_code: str):
        super().__init__(f"Session {room_code} not found", 404)
