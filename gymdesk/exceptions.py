class AppError(Exception):
    def __init__(self, message: str, code: str = "INTERNAL_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class ValidationError(AppError):
    def __init__(self, message: str):
        super().__init__(message, code="VALIDATION_ERROR")


class ImportSetupError(AppError):
    """Run-level state could not be loaded before the first record."""

    def __init__(self, message: str):
        super().__init__(f"Import could not start: {message}", code="IMPORT_SETUP_FAILED")


class RepositoryUnavailableError(AppError):
    """The datastore connection is gone; no further record can be written."""

    def __init__(self, message: str = "Datastore is unavailable"):
        super().__init__(message, code="REPOSITORY_UNAVAILABLE")
