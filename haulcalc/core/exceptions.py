"""Failures of the services this API depends on."""


class CollaboratorError(Exception):
    """An external service call failed. Never retried automatically."""

    source = "collaborator"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class OCRError(CollaboratorError):
    """The OCR service could not turn an image into text."""

    source = "ocr"


class ExchangeRateError(CollaboratorError):
    """The exchange-rate API could not be reached or returned garbage."""

    source = "exchange_rates"
