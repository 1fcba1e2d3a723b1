"""
Exceptions raised by the tournament structure engine.

ValidationError covers local rejections that never touch the network;
RemoteServiceError covers failures of the remote tournament service.
"""


class TournamentError(Exception):
    pass


class ValidationError(TournamentError):
    pass


class InvalidTransitionError(ValidationError):
    pass


class GroupNotEmptyError(ValidationError):
    pass


class CommitInProgressError(ValidationError):
    pass


class RemoteServiceError(TournamentError):
    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code
