"""
Error types and error codes for the EPGU client.

Every failed operation raises an ``OperationError`` naming the operation. Its
cause chain (``.cause`` / ``__cause__``) carries the layer that failed:

    OperationError(ORDER_CREATE)
      -> HTTPStatusError(StatusCategory.FORBIDDEN)
           -> APIError(ErrorCode.ACCESS_DENIED_SYSTEM)

Each layer can be checked without string matching, either with ``isinstance``
on the cause or with ``EPGUError.has()``, which walks the whole chain:

    except OperationError as e:
        if e.has(StatusCategory.FORBIDDEN): ...
        if e.has(ErrorCode.PUSH_DENIED): ...
        if e.has(WrongOrderIdError): ...
"""

from enum import Enum
from typing import Any, Dict, Iterator, Optional


class Operation(str, Enum):
    """Top-level client operations."""
    ORDER_CREATE = "OrderCreate"
    ORDER_PUSH = "OrderPush"
    ORDER_PUSH_CHUNKED = "OrderPushChunked"
    ORDER_INFO = "OrderInfo"
    ORDER_CANCEL = "OrderCancel"
    ATTACHMENT_DOWNLOAD = "AttachmentDownload"
    DICT = "Dict"

    def __str__(self) -> str:
        return self.value


class StatusCategory(str, Enum):
    """HTTP status categories reported by the API."""
    ORDER_NOT_FOUND = "OrderNotFound"
    BAD_REQUEST = "BadRequest"
    UNAUTHORIZED = "Unauthorized"
    FORBIDDEN = "Forbidden"
    URL_NOT_FOUND = "URLNotFound"
    UNABLE_TO_HANDLE_REQUEST = "UnableToHandleRequest"
    TOO_MANY_REQUESTS = "TooManyRequests"
    INTERNAL_ERROR = "InternalError"
    BAD_GATEWAY = "BadGateway"
    SERVICE_UNAVAILABLE = "ServiceUnavailable"
    GATEWAY_TIMEOUT = "GatewayTimeout"
    UNEXPECTED = "Unexpected"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_status(cls, status: int) -> "StatusCategory":
        return _STATUS_CATEGORIES.get(status, cls.UNEXPECTED)

    @property
    def description(self) -> str:
        return _STATUS_DESCRIPTIONS[self]


_STATUS_CATEGORIES = {
    204: StatusCategory.ORDER_NOT_FOUND,
    400: StatusCategory.BAD_REQUEST,
    401: StatusCategory.UNAUTHORIZED,
    403: StatusCategory.FORBIDDEN,
    404: StatusCategory.URL_NOT_FOUND,
    409: StatusCategory.UNABLE_TO_HANDLE_REQUEST,
    429: StatusCategory.TOO_MANY_REQUESTS,
    500: StatusCategory.INTERNAL_ERROR,
    502: StatusCategory.BAD_GATEWAY,
    503: StatusCategory.SERVICE_UNAVAILABLE,
    504: StatusCategory.GATEWAY_TIMEOUT,
}

_STATUS_DESCRIPTIONS = {
    StatusCategory.ORDER_NOT_FOUND: "order not found",
    StatusCategory.BAD_REQUEST: "invalid request parameters",
    StatusCategory.UNAUTHORIZED: "access denied",
    StatusCategory.FORBIDDEN: "access forbidden",
    StatusCategory.URL_NOT_FOUND: "request URL not found",
    StatusCategory.UNABLE_TO_HANDLE_REQUEST: "unable to handle request",
    StatusCategory.TOO_MANY_REQUESTS: "too many requests",
    StatusCategory.INTERNAL_ERROR: "internal error",
    StatusCategory.BAD_GATEWAY: "bad gateway",
    StatusCategory.SERVICE_UNAVAILABLE: "service unavailable",
    StatusCategory.GATEWAY_TIMEOUT: "gateway timeout",
    StatusCategory.UNEXPECTED: "unexpected HTTP status",
}


class ErrorCode(str, Enum):
    """Business error codes returned in the ``code`` field of a JSON error body."""
    ACCESS_DENIED_PERSON_PERMISSIONS = "access_denied_person_permissions"
    ACCESS_DENIED_SERVICE = "access_denied_service"
    ACCESS_DENIED_SYSTEM = "access_denied_system"
    ACCESS_DENIED_USER = "access_denied_user"
    ACCESS_DENIED_USER_LEGAL = "access_denied_user_legal"
    BAD_DELEGATION = "bad_delegation"
    BAD_REQUEST = "bad_request"
    CANCEL_NOT_ALLOWED = "cancel_not_allowed"
    CONFIG_DELEGATION = "config_delegation"
    INTERNAL_ERROR = "internal_error"
    LIMITATION_EXCEPTION = "limitation_exception"
    NOT_FOUND = "not_found"
    ORDER_ACCESS = "order_access"
    PUSH_DENIED = "push_denied"
    SERVICE_NOT_FOUND = "service_not_found"

    # Sentinels: empty code and codes this client does not know yet
    NOT_SPECIFIED = ""
    UNEXPECTED = "<unexpected>"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_code(cls, code: Optional[str]) -> "ErrorCode":
        if not code:
            return cls.NOT_SPECIFIED
        try:
            member = cls(code)
        except ValueError:
            return cls.UNEXPECTED
        return cls.UNEXPECTED if member is cls.UNEXPECTED else member

    @property
    def description(self) -> str:
        return _CODE_DESCRIPTIONS[self]


_CODE_DESCRIPTIONS = {
    ErrorCode.ACCESS_DENIED_PERSON_PERMISSIONS:
        "the user has not given consent to this system for the operation",
    ErrorCode.ACCESS_DENIED_SERVICE: "access to the requested service is denied for this system",
    ErrorCode.ACCESS_DENIED_SYSTEM: "access denied for requesting system",
    ErrorCode.ACCESS_DENIED_USER: "access denied for this type of user",
    ErrorCode.ACCESS_DENIED_USER_LEGAL:
        "the token was issued for an organization that does not own the requesting system",
    ErrorCode.BAD_DELEGATION: "no delegated authority to create the order",
    ErrorCode.BAD_REQUEST: "invalid request parameters",
    ErrorCode.CANCEL_NOT_ALLOWED: "the order cannot be cancelled in its current status",
    ErrorCode.CONFIG_DELEGATION: "no delegation is configured for the requested service",
    ErrorCode.INTERNAL_ERROR: "order processing failed, see the incident for details",
    ErrorCode.LIMITATION_EXCEPTION: "API limits exceeded",
    ErrorCode.NOT_FOUND: "order not found",
    ErrorCode.ORDER_ACCESS: "the user has no access to this order",
    ErrorCode.PUSH_DENIED:
        "no permission to submit the order, only the head of the organization "
        "or an authorized employee may submit it",
    ErrorCode.SERVICE_NOT_FOUND: "service given by serviceCode not found",
    ErrorCode.NOT_SPECIFIED: "error code not specified",
    ErrorCode.UNEXPECTED: "unexpected error code",
}


# Attributes through which chain levels expose their enum classification
_MARKER_ATTRS = ("operation", "category", "code")


class EPGUError(Exception):
    """Base exception for all EPGU client errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def chain(self) -> Iterator[BaseException]:
        """Iterate over this error and its causes, outermost first."""
        err: Optional[BaseException] = self
        seen = set()
        while err is not None and id(err) not in seen:
            seen.add(id(err))
            yield err
            err = err.__cause__

    def has(self, marker: Any) -> bool:
        """
        Check whether any level of the chain matches ``marker``.

        ``marker`` is an exception class or an enum member: an ``Operation``,
        a ``StatusCategory``, an ``ErrorCode`` or their ESIA counterparts.
        """
        for err in self.chain():
            if isinstance(marker, type):
                if isinstance(err, marker):
                    return True
            elif isinstance(marker, Enum):
                if any(getattr(err, attr, None) is marker for attr in _MARKER_ATTRS):
                    return True
        return False

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary representation."""
        result = {
            'error': self.__class__.__name__,
            'message': self.message,
            'details': self.details
        }
        if self.cause is not None:
            result['cause'] = str(self.cause)
        return result

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message}: {self.cause}"
        return self.message


class OperationError(EPGUError):
    """Raised by every client method; names the operation that failed."""

    def __init__(self, operation: Enum, cause: BaseException):
        super().__init__(f"{operation.value} failed", {'operation': operation.value}, cause)
        self.operation = operation


# Validation and preparation errors

class ValidationError(EPGUError):
    """Raised when arguments are rejected before any request is made."""


class NilArchiveError(ValidationError):
    def __init__(self, message: str = "archive is missing or empty"):
        super().__init__(message)


class NoFilesError(ValidationError):
    def __init__(self, message: str = "no files to put into the archive"):
        super().__init__(message)


class InvalidFileLinkError(ValidationError):
    def __init__(self, link: str):
        super().__init__(f"invalid file link '{link}'", {'link': link})
        self.link = link


class ZipError(EPGUError):
    def __init__(self, cause: BaseException):
        super().__init__("zip archive creation failed", cause=cause)


class MultipartBodyError(EPGUError):
    def __init__(self, cause: BaseException):
        super().__init__("multipart body preparation failed", cause=cause)


# Transport errors

class RequestError(EPGUError):
    """Base class for transport-level failures."""


class RequestPrepareError(RequestError):
    def __init__(self, cause: BaseException):
        super().__init__("HTTP request preparation failed", cause=cause)


class RequestCallError(RequestError):
    def __init__(self, cause: BaseException):
        super().__init__("HTTP request failed", cause=cause)


class ResponseReadError(RequestError):
    def __init__(self, cause: BaseException):
        super().__init__("HTTP response read failed", cause=cause)


# Decode errors

class JSONUnmarshalError(EPGUError):
    def __init__(self, cause: BaseException):
        super().__init__("JSON decode failed", cause=cause)


class UnexpectedContentTypeError(EPGUError):
    def __init__(self, content_type: str):
        super().__init__(
            f"unexpected content type '{content_type}'",
            {'content_type': content_type}
        )
        self.content_type = content_type


# Protocol errors

class HTTPStatusError(EPGUError):
    """Non-success HTTP response, classified by status code."""

    def __init__(
        self,
        status: int,
        category: StatusCategory,
        cause: Optional[BaseException] = None
    ):
        super().__init__(
            f"HTTP {status}: {category.value}: {category.description}",
            {'status': status, 'category': category.value},
            cause
        )
        self.status = status
        self.category = category


class APIError(EPGUError):
    """Structured JSON error body returned by the API."""

    def __init__(
        self,
        code: ErrorCode,
        raw_code: str = "",
        api_message: str = "",
        error: str = ""
    ):
        fields = []
        if raw_code:
            fields.append(f"code='{raw_code}'")
        if api_message:
            fields.append(f"message='{api_message}'")
        if error:
            fields.append(f"error='{error}'")
        super().__init__(
            f"{code.description} [{', '.join(fields)}]",
            {'code': raw_code, 'message': api_message, 'error': error}
        )
        self.code = code
        self.raw_code = raw_code
        self.api_message = api_message
        self.error = error


class TextError(EPGUError):
    """Plain-text error body, kept on a single line."""

    def __init__(self, text: str):
        super().__init__(text.replace("\n", "\\n"))


class WrongOrderIdError(EPGUError):
    def __init__(self, expected: Optional[int], actual: Any):
        if expected is None:
            message = f"invalid order id in response: {actual!r}"
        else:
            message = f"order id mismatch: requested {expected}, got {actual!r}"
        super().__init__(message, {'expected': expected, 'actual': actual})
        self.expected = expected
        self.actual = actual


class DictionaryError(EPGUError):
    """Dictionary lookup answered with a non-zero result code."""

    def __init__(self, code: int, dict_message: str = ""):
        super().__init__(
            f"dictionary lookup failed [code='{code}', message='{dict_message}']",
            {'code': code, 'message': dict_message}
        )
        self.code = code
        self.dict_message = dict_message


__all__ = [
    "Operation",
    "StatusCategory",
    "ErrorCode",
    "EPGUError",
    "OperationError",
    "ValidationError",
    "NilArchiveError",
    "NoFilesError",
    "InvalidFileLinkError",
    "ZipError",
    "MultipartBodyError",
    "RequestError",
    "RequestPrepareError",
    "RequestCallError",
    "ResponseReadError",
    "JSONUnmarshalError",
    "UnexpectedContentTypeError",
    "HTTPStatusError",
    "APIError",
    "TextError",
    "WrongOrderIdError",
    "DictionaryError",
]
