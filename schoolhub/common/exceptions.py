"""Errors raised by the realtime handlers and reported back to the caller."""
from schoolhub.common import constants


class RelayException(Exception):
    """Base exception for errors reported to the initiating client"""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)

    @property
    def code(self) -> str:
        return self.__class__.__name__


class ContentRequired(RelayException):
    def __init__(self):
        super().__init__(constants.MESSAGE_CONTENT_REQUIRED)


class MissingFields(RelayException):
    def __init__(self):
        super().__init__(constants.MISSING_REQUIRED_FIELDS)


class UserNotFound(RelayException):
    def __init__(self):
        super().__init__(constants.USER_NOT_FOUND)


class SchoolMismatch(RelayException):
    def __init__(self):
        super().__init__(constants.SCHOOL_MISMATCH)


class InvalidRecipient(RelayException):
    def __init__(self):
        super().__init__(constants.CANNOT_MESSAGE_SELF)


class InvalidRelatedStudent(RelayException):
    def __init__(self):
        super().__init__(constants.INVALID_RELATED_STUDENT)


class EmptyQuestion(RelayException):
    def __init__(self):
        super().__init__(constants.ASK_A_QUESTION)


class NotAStudent(RelayException):
    def __init__(self):
        super().__init__(constants.TUTOR_STUDENTS_ONLY)


class ProviderError(Exception):
    """Raised by a completion provider when it cannot produce an answer"""
