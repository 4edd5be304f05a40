class EduCentralError(Exception):
    """Base class for errors raised by the service layer."""


class ValidationFailed(EduCentralError):
    """A write was refused because the submitted data breaks a rule.

    ``field`` names the form field the message belongs to, when there is one.
    """

    def __init__(self, message, field=None):
        super().__init__(message)
        self.message = message
        self.field = field


class DuplicateEmailError(ValidationFailed):
    def __init__(self, message='Email ini sudah terdaftar oleh akun lain.', field='email'):
        super().__init__(message, field=field)


class NotFoundError(EduCentralError):
    pass


class UploadError(EduCentralError):
    pass
