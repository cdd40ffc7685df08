"""
Error taxonomy and AWS error classification.

All matching on AWS error codes and messages happens here so the resource
handlers only ask yes/no questions about a ClientError.
"""

from typing import Optional

from botocore.exceptions import ClientError

ERROR_CODE_NOT_FOUND = "ResourceNotFoundException"
ERROR_CODE_ACCESS_DENIED = "AccessDeniedException"
ERROR_CODE_CONFLICT = "ConflictException"
ERROR_CODE_VALIDATION = "ValidationException"
# Macie2 reports some transient failures with this literal error code
ERROR_CODE_CLIENT_ERROR = "ClientError"

# (error code, message substring) pairs meaning the service was switched off
SERVICE_DISABLED_CONDITIONS = ((ERROR_CODE_ACCESS_DENIED, "Macie is not enabled"),)

# Additional conditions under which Macie reports a member as no longer ours
MEMBER_DISASSOCIATED_CONDITIONS = (
    (ERROR_CODE_CONFLICT, "member accounts are associated with your account"),
    (ERROR_CODE_VALIDATION, "account is not associated with your account"),
)


class ReconcileError(Exception):
    """Base class for errors raised while reconciling a resource."""

    def __init__(self, message: str, resource_type: Optional[str] = None):
        super().__init__(message)
        self.resource_type = resource_type


class InvalidIdentityError(ReconcileError, ValueError):
    """A resource identity string could not be parsed."""


class ResourceNotFoundError(ReconcileError):
    """The resource an identity points to does not exist."""


class UnprocessedItemError(ReconcileError):
    """A batch call reported an item it could not process."""

    def __init__(
        self,
        operation: str,
        item_id: Optional[str],
        code: Optional[str],
        message: Optional[str],
    ):
        self.operation = operation
        self.item_id = item_id
        self.code = code or ""
        self.message = message or ""
        detail = f"{self.code}: {self.message}" if self.code else self.message
        super().__init__(f"error {operation} ({item_id}): {detail}")


class WaitTimeoutError(ReconcileError):
    """A polling wait did not observe the target state before its deadline."""


class UnexpectedStateError(ReconcileError):
    """A polling wait observed a state that is neither pending nor target."""


def error_code(err: BaseException) -> str:
    """Return the AWS error code of a ClientError, or "" for anything else."""
    if not isinstance(err, ClientError):
        return ""
    return err.response.get("Error", {}).get("Code", "") or ""


def error_message(err: BaseException) -> str:
    """Return the AWS error message of a ClientError, or "" for anything else."""
    if not isinstance(err, ClientError):
        return ""
    return err.response.get("Error", {}).get("Message", "") or ""


def _matches(err: BaseException, code: str, substring: str) -> bool:
    return error_code(err) == code and substring in error_message(err)


def is_not_found(err: BaseException) -> bool:
    return error_code(err) == ERROR_CODE_NOT_FOUND


def is_service_disabled(err: BaseException) -> bool:
    """
    Check whether an error means the service is disabled for the account.

    AWS has no dedicated error code for this, only an access-denied error
    whose message names the disabled service.
    """
    return any(
        _matches(err, code, substring)
        for code, substring in SERVICE_DISABLED_CONDITIONS
    )


def is_gone(err: BaseException) -> bool:
    """NotFound or ServiceDisabled: the resource can be treated as absent."""
    return is_not_found(err) or is_service_disabled(err)


def is_member_absent(err: BaseException) -> bool:
    """Whether a Macie member lookup error means the member is gone."""
    if is_gone(err):
        return True
    return any(
        _matches(err, code, substring)
        for code, substring in MEMBER_DISASSOCIATED_CONDITIONS
    )


def is_retryable_client_error(err: BaseException) -> bool:
    return error_code(err) == ERROR_CODE_CLIENT_ERROR


def never_retry(err: BaseException) -> bool:
    return False
